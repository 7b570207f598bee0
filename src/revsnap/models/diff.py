"""Diff data models."""

from dataclasses import dataclass, field
from enum import Enum


class LineType(Enum):
    """Type of a diff line."""

    ADDED = "added"
    REMOVED = "removed"
    CONTEXT = "context"


class FileStatus(Enum):
    """How a file changed."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class DiffLine:
    """A single line in a diff."""

    line_type: LineType
    content: str
    old_line_no: int | None = None
    new_line_no: int | None = None

    @property
    def line_no(self) -> int | None:
        """Get the relevant line number for this line."""
        if self.line_type == LineType.REMOVED:
            return self.old_line_no
        return self.new_line_no

    def to_dict(self) -> dict:
        return {
            "type": self.line_type.value,
            "content": self.content,
            "oldLineNumber": self.old_line_no,
            "newLineNumber": self.new_line_no,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DiffLine":
        return cls(
            line_type=LineType(data["type"]),
            content=data["content"],
            old_line_no=data.get("oldLineNumber"),
            new_line_no=data.get("newLineNumber"),
        )


@dataclass
class DiffHunk:
    """A contiguous block of changes (one ``@@ ... @@`` section)."""

    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: list[DiffLine] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "oldStart": self.old_start,
            "oldLines": self.old_lines,
            "newStart": self.new_start,
            "newLines": self.new_lines,
            "lines": [line.to_dict() for line in self.lines],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DiffHunk":
        return cls(
            old_start=data["oldStart"],
            old_lines=data["oldLines"],
            new_start=data["newStart"],
            new_lines=data["newLines"],
            lines=[DiffLine.from_dict(line) for line in data.get("lines", [])],
        )


@dataclass
class DiffFile:
    """A single file's diff.

    ``additions`` and ``deletions`` are always derived from the hunks.
    """

    old_path: str
    new_path: str
    status: FileStatus
    hunks: list[DiffHunk] = field(default_factory=list)

    @property
    def path(self) -> str:
        """Canonical path of the file (the new path unless there is none)."""
        return self.new_path or self.old_path

    @property
    def additions(self) -> int:
        """Count of added lines."""
        return sum(
            1
            for hunk in self.hunks
            for line in hunk.lines
            if line.line_type == LineType.ADDED
        )

    @property
    def deletions(self) -> int:
        """Count of removed lines."""
        return sum(
            1
            for hunk in self.hunks
            for line in hunk.lines
            if line.line_type == LineType.REMOVED
        )

    def to_dict(self, include_hunks: bool = True) -> dict:
        data = {
            "oldPath": self.old_path,
            "newPath": self.new_path,
            "status": self.status.value,
            "additions": self.additions,
            "deletions": self.deletions,
        }
        if include_hunks:
            data["hunks"] = [hunk.to_dict() for hunk in self.hunks]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DiffFile":
        """Restore a file from its JSON shape.

        Stored ``additions``/``deletions`` are ignored; they are recomputed
        from the hunks.
        """
        return cls(
            old_path=data["oldPath"],
            new_path=data["newPath"],
            status=FileStatus(data["status"]),
            hunks=[DiffHunk.from_dict(h) for h in data.get("hunks", [])],
        )


@dataclass(frozen=True)
class DiffSummary:
    """Aggregate statistics over a set of changed files."""

    total_files: int = 0
    total_additions: int = 0
    total_deletions: int = 0
    files_added: int = 0
    files_modified: int = 0
    files_deleted: int = 0
    files_renamed: int = 0

    def to_dict(self) -> dict:
        return {
            "totalFiles": self.total_files,
            "totalAdditions": self.total_additions,
            "totalDeletions": self.total_deletions,
            "filesAdded": self.files_added,
            "filesModified": self.files_modified,
            "filesDeleted": self.files_deleted,
            "filesRenamed": self.files_renamed,
        }
