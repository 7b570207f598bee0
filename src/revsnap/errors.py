"""Error taxonomy for review operations."""

from enum import Enum


class ErrorCode(str, Enum):
    """Stable machine-readable error codes."""

    NOT_GIT_REPO = "NOT_GIT_REPO"
    NO_COMMITS = "NO_COMMITS"
    NO_STAGED_CHANGES = "NO_STAGED_CHANGES"
    NO_CHANGES = "NO_CHANGES"
    INVALID_SOURCE = "INVALID_SOURCE"
    NOT_FOUND = "NOT_FOUND"


class ReviewError(Exception):
    """A user-recoverable failure with a stable code."""

    def __init__(self, message: str, code: ErrorCode):
        super().__init__(message)
        self.message = message
        self.code = code

    @property
    def http_status(self) -> int:
        """HTTP status an API layer should answer with."""
        return 404 if self.code == ErrorCode.NOT_FOUND else 400

    def __repr__(self) -> str:
        return f"ReviewError({self.message!r}, {self.code.value})"
