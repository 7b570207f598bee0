"""Review data models and the two persisted snapshot formats."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Generic, TypeVar
from uuid import uuid4

from revsnap.models.diff import DiffFile, DiffHunk, DiffSummary, FileStatus

T = TypeVar("T")


class ReviewStatus(Enum):
    """Lifecycle state of a review."""

    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"

    @property
    def label(self) -> str:
        labels = {
            ReviewStatus.IN_PROGRESS: "🔄 In Progress",
            ReviewStatus.APPROVED: "✅ Approved",
            ReviewStatus.CHANGES_REQUESTED: "⚠️ Changes Requested",
        }
        return labels[self]


class SourceType(Enum):
    """Where a review's diff came from."""

    STAGED = "staged"
    BRANCH = "branch"
    COMMITS = "commits"


@dataclass
class RepositoryInfo:
    """Repository metadata captured when a review is created."""

    name: str
    branch: str
    remote: str | None
    path: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "branch": self.branch,
            "remote": self.remote,
            "path": self.path,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RepositoryInfo":
        return cls(
            name=data.get("name", "unknown"),
            branch=data.get("branch", "main"),
            remote=data.get("remote"),
            path=data.get("path", ""),
        )


@dataclass
class Review:
    """A persisted review row."""

    id: str
    repository_path: str
    source_type: SourceType
    snapshot_data: str
    base_ref: str | None = None
    source_ref: str | None = None
    status: ReviewStatus = ReviewStatus.IN_PROGRESS
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Serialize everything except the snapshot blob."""
        return {
            "id": self.id,
            "repositoryPath": self.repository_path,
            "baseRef": self.base_ref,
            "sourceType": self.source_type.value,
            "sourceRef": self.source_ref,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class ReviewFile:
    """Per-file record of a review in normalized storage.

    ``hunks_data`` is JSON-encoded hunks, or None when the hunks are
    regenerated from git on demand. Entries derived from a legacy snapshot
    have no ``id``.
    """

    review_id: str
    file_path: str
    status: FileStatus
    additions: int
    deletions: int
    old_path: str | None = None
    hunks_data: str | None = None
    id: str | None = None
    created_at: datetime | None = None

    @property
    def hunks(self) -> list[DiffHunk]:
        """Decode the stored hunks (empty when none are stored)."""
        if self.hunks_data is None:
            return []
        return [DiffHunk.from_dict(h) for h in json.loads(self.hunks_data)]

    @classmethod
    def from_diff_file(
        cls,
        review_id: str,
        diff_file: DiffFile,
        store_hunks: bool,
        persistent: bool = True,
    ) -> "ReviewFile":
        """Build the file record for a parsed file."""
        file_path = diff_file.path
        old_path = diff_file.old_path if diff_file.old_path != file_path else None
        hunks_data = (
            serialize_hunks(diff_file.hunks) if store_hunks else None
        )
        return cls(
            review_id=review_id,
            file_path=file_path,
            old_path=old_path,
            status=diff_file.status,
            additions=diff_file.additions,
            deletions=diff_file.deletions,
            hunks_data=hunks_data,
            id=str(uuid4()) if persistent else None,
        )

    def to_dict(self) -> dict:
        """Metadata only; hunks are fetched separately."""
        return {
            "id": self.id,
            "reviewId": self.review_id,
            "filePath": self.file_path,
            "oldPath": self.old_path,
            "status": self.status.value,
            "additions": self.additions,
            "deletions": self.deletions,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


def serialize_hunks(hunks: list[DiffHunk]) -> str:
    return json.dumps([hunk.to_dict() for hunk in hunks])


@dataclass
class LegacySnapshot:
    """Snapshot written before normalized storage: files are embedded."""

    files: list[DiffFile]
    repository: RepositoryInfo

    @property
    def embedded_files(self) -> list[DiffFile]:
        return self.files

    def to_json(self) -> str:
        return json.dumps(
            {
                "files": [f.to_dict() for f in self.files],
                "repository": self.repository.to_dict(),
            }
        )


@dataclass
class NormalizedSnapshot:
    """Current snapshot: repository metadata only, files live in review_files."""

    repository: RepositoryInfo
    version: ClassVar[int] = 2

    @property
    def embedded_files(self) -> None:
        return None

    def to_json(self) -> str:
        return json.dumps(
            {"version": self.version, "repository": self.repository.to_dict()}
        )


Snapshot = LegacySnapshot | NormalizedSnapshot


def decode_snapshot(snapshot_data: str) -> Snapshot:
    """Decode a stored snapshot blob into its variant.

    Untagged blobs are legacy snapshots and stay readable indefinitely.
    """
    data = json.loads(snapshot_data)
    repository = RepositoryInfo.from_dict(data.get("repository") or {})

    if "version" not in data:
        return LegacySnapshot(
            files=[DiffFile.from_dict(f) for f in data.get("files", [])],
            repository=repository,
        )
    if data["version"] == NormalizedSnapshot.version:
        return NormalizedSnapshot(repository=repository)
    raise ValueError(f"Unsupported snapshot version: {data['version']!r}")


@dataclass
class ReviewDetails:
    """A review with its file metadata, summary and repository info.

    Built the same way regardless of which snapshot format is stored.
    """

    review: Review
    files: list[ReviewFile]
    summary: DiffSummary
    repository: RepositoryInfo

    @property
    def id(self) -> str:
        return self.review.id

    def to_dict(self) -> dict:
        data = self.review.to_dict()
        data["files"] = [f.to_dict() for f in self.files]
        data["summary"] = self.summary.to_dict()
        data["repository"] = self.repository.to_dict()
        return data


@dataclass
class ReviewListItem:
    """A review as shown in listings."""

    review: Review
    summary: DiffSummary

    def to_dict(self) -> dict:
        data = self.review.to_dict()
        data["summary"] = self.summary.to_dict()
        return data


@dataclass
class ReviewStats:
    """Review counts per status."""

    total: int = 0
    in_progress: int = 0
    approved: int = 0
    changes_requested: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "inProgress": self.in_progress,
            "approved": self.approved,
            "changesRequested": self.changes_requested,
        }


@dataclass
class ReviewResolution:
    """Outcome of approving a review and resolving its comments."""

    review_id: str
    previous_status: ReviewStatus
    new_status: ReviewStatus
    comments_resolved: int
    comments_already_resolved: int

    def to_dict(self) -> dict:
        return {
            "reviewId": self.review_id,
            "previousStatus": self.previous_status.value,
            "newStatus": self.new_status.value,
            "commentsResolved": self.comments_resolved,
            "commentsAlreadyResolved": self.comments_already_resolved,
        }


@dataclass
class Page(Generic[T]):
    """One page of a paginated listing."""

    data: list[T]
    total: int
    page: int
    page_size: int

    def to_dict(self) -> dict:
        return {
            "data": [item.to_dict() for item in self.data],
            "total": self.total,
            "page": self.page,
            "pageSize": self.page_size,
        }
