"""Data access for reviews, review files and comments.

Repositories work inside a session handed to them by the caller and never
commit; the caller owns the transaction. ``ReviewFileRepository.create_bulk``
additionally wraps its inserts in a savepoint so a failed batch leaves no
rows behind.
"""

from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, defer

from revsnap.db.tables import CommentRow, ReviewFileRow, ReviewRow
from revsnap.models.comment import Comment
from revsnap.models.diff import FileStatus, LineType
from revsnap.models.review import Review, ReviewFile, ReviewStatus, SourceType


def row_to_review(row: ReviewRow) -> Review:
    return Review(
        id=row.id,
        repository_path=row.repository_path,
        base_ref=row.base_ref,
        source_type=SourceType(row.source_type),
        source_ref=row.source_ref,
        snapshot_data=row.snapshot_data,
        status=ReviewStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def row_to_review_file(row: ReviewFileRow, with_hunks: bool = True) -> ReviewFile:
    return ReviewFile(
        id=row.id,
        review_id=row.review_id,
        file_path=row.file_path,
        old_path=row.old_path,
        status=FileStatus(row.status),
        additions=row.additions,
        deletions=row.deletions,
        hunks_data=row.hunks_data if with_hunks else None,
        created_at=row.created_at,
    )


def row_to_comment(row: CommentRow) -> Comment:
    return Comment(
        id=row.id,
        review_id=row.review_id,
        file_path=row.file_path,
        line_number=row.line_number,
        line_type=LineType(row.line_type) if row.line_type else None,
        content=row.content,
        suggestion=row.suggestion,
        resolved=row.resolved,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class ReviewRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, review: Review) -> Review:
        row = ReviewRow(
            id=review.id,
            repository_path=review.repository_path,
            base_ref=review.base_ref,
            source_type=review.source_type.value,
            source_ref=review.source_ref,
            snapshot_data=review.snapshot_data,
            status=review.status.value,
            created_at=review.created_at,
            updated_at=review.updated_at,
        )
        self.db.add(row)
        self.db.flush()
        return row_to_review(row)

    def find_by_id(self, review_id: str) -> Review | None:
        row = self.db.get(ReviewRow, review_id)
        return row_to_review(row) if row else None

    def find_all(
        self,
        status: ReviewStatus | None = None,
        repository_path: str | None = None,
        source_type: SourceType | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Review], int]:
        """Return one page of reviews (newest first) and the total count."""
        conditions = []
        if status is not None:
            conditions.append(ReviewRow.status == status.value)
        if repository_path is not None:
            conditions.append(ReviewRow.repository_path == repository_path)
        if source_type is not None:
            conditions.append(ReviewRow.source_type == source_type.value)

        total = self.db.scalar(
            select(func.count()).select_from(ReviewRow).where(*conditions)
        )
        rows = self.db.scalars(
            select(ReviewRow)
            .where(*conditions)
            .order_by(ReviewRow.created_at.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        return [row_to_review(row) for row in rows], total or 0

    def update(self, review_id: str, status: ReviewStatus | None = None) -> Review | None:
        row = self.db.get(ReviewRow, review_id)
        if row is None:
            return None
        if status is not None:
            row.status = status.value
        row.updated_at = datetime.now()
        self.db.flush()
        return row_to_review(row)

    def delete(self, review_id: str) -> bool:
        result = self.db.execute(delete(ReviewRow).where(ReviewRow.id == review_id))
        return result.rowcount > 0

    def find_latest_id(self) -> str | None:
        """ID of the most recently created review."""
        return self.db.scalar(
            select(ReviewRow.id).order_by(ReviewRow.created_at.desc()).limit(1)
        )

    def count_all(self, repository_path: str | None = None) -> int:
        query = select(func.count()).select_from(ReviewRow)
        if repository_path is not None:
            query = query.where(ReviewRow.repository_path == repository_path)
        return self.db.scalar(query) or 0

    def count_by_status(
        self, status: ReviewStatus, repository_path: str | None = None
    ) -> int:
        query = (
            select(func.count())
            .select_from(ReviewRow)
            .where(ReviewRow.status == status.value)
        )
        if repository_path is not None:
            query = query.where(ReviewRow.repository_path == repository_path)
        return self.db.scalar(query) or 0


class ReviewFileRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_bulk(self, files: list[ReviewFile]) -> None:
        """Insert all file records or none of them.

        A failure (e.g. two records with the same path) rolls the batch back
        and re-raises the storage error unchanged.
        """
        if not files:
            return

        now = datetime.now()
        with self.db.begin_nested():
            self.db.add_all(
                ReviewFileRow(
                    id=f.id,
                    review_id=f.review_id,
                    file_path=f.file_path,
                    old_path=f.old_path,
                    status=f.status.value,
                    additions=f.additions,
                    deletions=f.deletions,
                    hunks_data=f.hunks_data,
                    created_at=now,
                )
                for f in files
            )
            self.db.flush()

    def find_by_review(self, review_id: str) -> list[ReviewFile]:
        """Find all files for a review (metadata only, no hunks)."""
        rows = self.db.scalars(
            select(ReviewFileRow)
            .options(defer(ReviewFileRow.hunks_data, raiseload=True))
            .where(ReviewFileRow.review_id == review_id)
            .order_by(ReviewFileRow.file_path)
        )
        return [row_to_review_file(row, with_hunks=False) for row in rows]

    def find_by_review_and_path(self, review_id: str, file_path: str) -> ReviewFile | None:
        """Find a specific file by review and path (includes hunks)."""
        row = self.db.scalar(
            select(ReviewFileRow).where(
                ReviewFileRow.review_id == review_id,
                ReviewFileRow.file_path == file_path,
            )
        )
        return row_to_review_file(row) if row else None

    def delete_by_review(self, review_id: str) -> int:
        result = self.db.execute(
            delete(ReviewFileRow).where(ReviewFileRow.review_id == review_id)
        )
        return result.rowcount

    def count_by_review(self, review_id: str) -> int:
        return (
            self.db.scalar(
                select(func.count())
                .select_from(ReviewFileRow)
                .where(ReviewFileRow.review_id == review_id)
            )
            or 0
        )


class CommentRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, comment: Comment) -> Comment:
        row = CommentRow(
            id=comment.id,
            review_id=comment.review_id,
            file_path=comment.file_path,
            line_number=comment.line_number,
            line_type=comment.line_type.value if comment.line_type else None,
            content=comment.content,
            suggestion=comment.suggestion,
            resolved=comment.resolved,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )
        self.db.add(row)
        self.db.flush()
        return row_to_comment(row)

    def find_by_review(self, review_id: str) -> list[Comment]:
        rows = self.db.scalars(
            select(CommentRow)
            .where(CommentRow.review_id == review_id)
            .order_by(
                CommentRow.file_path,
                CommentRow.line_number.asc().nulls_first(),
                CommentRow.created_at,
            )
        )
        return [row_to_comment(row) for row in rows]

    def set_resolved(self, comment_id: str, resolved: bool) -> Comment | None:
        row = self.db.get(CommentRow, comment_id)
        if row is None:
            return None
        row.resolved = resolved
        row.updated_at = datetime.now()
        self.db.flush()
        return row_to_comment(row)

    def resolve_all(self, review_id: str) -> int:
        """Resolve every open comment of a review; returns how many changed."""
        result = self.db.execute(
            update(CommentRow)
            .where(CommentRow.review_id == review_id, CommentRow.resolved.is_(False))
            .values(resolved=True, updated_at=datetime.now())
        )
        return result.rowcount

    def count_by_review(self, review_id: str) -> int:
        return (
            self.db.scalar(
                select(func.count())
                .select_from(CommentRow)
                .where(CommentRow.review_id == review_id)
            )
            or 0
        )
