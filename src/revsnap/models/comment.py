"""Comment data models."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from revsnap.models.diff import LineType


@dataclass
class Comment:
    """A review comment."""

    review_id: str
    file_path: str
    content: str
    line_number: int | None = None  # None = file-level comment
    line_type: LineType | None = None  # None = match any line kind
    suggestion: str | None = None
    resolved: bool = False
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_file_level(self) -> bool:
        return self.line_number is None

    @property
    def location(self) -> str:
        """Get formatted location string for export.

        Format:
        - Removed lines: `path:~linenum`
        - Single line: `path:linenum`
        - File comments: `path`
        """
        if self.is_file_level:
            return f"`{self.file_path}`"
        elif self.line_type == LineType.REMOVED:
            return f"`{self.file_path}:~{self.line_number}`"
        else:
            return f"`{self.file_path}:{self.line_number}`"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reviewId": self.review_id,
            "filePath": self.file_path,
            "lineNumber": self.line_number,
            "lineType": self.line_type.value if self.line_type else None,
            "content": self.content,
            "suggestion": self.suggestion,
            "resolved": self.resolved,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
