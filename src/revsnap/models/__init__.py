"""Data models for revsnap."""

from revsnap.models.diff import DiffFile, DiffHunk, DiffLine, DiffSummary, FileStatus, LineType
from revsnap.models.comment import Comment
from revsnap.models.review import (
    LegacySnapshot,
    NormalizedSnapshot,
    RepositoryInfo,
    Review,
    ReviewDetails,
    ReviewFile,
    ReviewStatus,
    SourceType,
)

__all__ = [
    "DiffFile",
    "DiffHunk",
    "DiffLine",
    "DiffSummary",
    "FileStatus",
    "LineType",
    "Comment",
    "LegacySnapshot",
    "NormalizedSnapshot",
    "RepositoryInfo",
    "Review",
    "ReviewDetails",
    "ReviewFile",
    "ReviewStatus",
    "SourceType",
]
