"""Review snapshot manager.

Creates reviews from a diff source, stores them in the normalized format
(review row + one row per file) and reads back both snapshot formats:

- legacy snapshots (no ``version`` tag) embed every file, hunks included;
- version 2 snapshots hold repository metadata only, and the files live in
  ``review_files``. Hunks are stored there for staged reviews and
  regenerated from git for branch and commit reviews.
"""

import logging
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker

from revsnap.core.diff_parser import merge_by_path, parse_diff, parse_single_file_diff
from revsnap.core.diff_source import get_diff_source
from revsnap.core.git import GitService
from revsnap.core.summary import summarize
from revsnap.db.repositories import (
    CommentRepository,
    ReviewFileRepository,
    ReviewRepository,
)
from revsnap.errors import ErrorCode, ReviewError
from revsnap.models.comment import Comment
from revsnap.models.diff import DiffHunk, LineType
from revsnap.models.export import ReviewExport
from revsnap.models.review import (
    NormalizedSnapshot,
    Page,
    Review,
    ReviewDetails,
    ReviewFile,
    ReviewListItem,
    ReviewResolution,
    ReviewStats,
    ReviewStatus,
    SourceType,
    decode_snapshot,
)

logger = logging.getLogger(__name__)


def not_found(review_id: str) -> ReviewError:
    return ReviewError(f"Review not found: {review_id}", ErrorCode.NOT_FOUND)


class ReviewSnapshotManager:
    """Create, read and export reviews.

    Args:
        git: Git collaborator for the repository under review
        session_factory: SQLAlchemy session factory; every operation runs in
            its own session
    """

    def __init__(self, git: GitService, session_factory: sessionmaker[Session]):
        self.git = git
        self.session_factory = session_factory

    def create(
        self,
        source_type: SourceType | str = SourceType.STAGED,
        source_ref: str | None = None,
    ) -> ReviewDetails:
        """Create a review from staged changes, a branch or a set of commits.

        Raises:
            ReviewError: NOT_GIT_REPO, NO_COMMITS, INVALID_SOURCE,
                NO_STAGED_CHANGES or NO_CHANGES
        """
        if not self.git.is_repo():
            raise ReviewError("Not a git repository", ErrorCode.NOT_GIT_REPO)
        if not self.git.has_commits():
            raise ReviewError(
                "Repository has no commits yet. Create an initial commit first.",
                ErrorCode.NO_COMMITS,
            )

        source = get_diff_source(source_type, source_ref)
        source.check(self.git)

        files = parse_diff(source.get_diff(self.git))
        if not files:
            raise ReviewError("No changes to review", ErrorCode.NO_CHANGES)

        base_ref = source.get_base_ref(self.git)
        repository = self.git.get_repository_info()

        review = Review(
            id=str(uuid4()),
            repository_path=repository.path,
            base_ref=base_ref,
            source_type=source.source_type,
            source_ref=source.source_ref,
            snapshot_data=NormalizedSnapshot(repository=repository).to_json(),
            status=ReviewStatus.IN_PROGRESS,
        )
        review_files = [
            ReviewFile.from_diff_file(review.id, f, store_hunks=source.stores_hunks)
            for f in merge_by_path(files)
        ]

        with self.session_factory.begin() as db:
            review = ReviewRepository(db).create(review)
            file_repo = ReviewFileRepository(db)
            file_repo.create_bulk(review_files)
            stored_files = file_repo.find_by_review(review.id)

        logger.info(
            "Created review %s from %s (%d files)",
            review.id,
            source.get_description(),
            len(stored_files),
        )
        return ReviewDetails(
            review=review,
            files=stored_files,
            summary=summarize(stored_files),
            repository=repository,
        )

    def get_by_id(self, review_id: str) -> ReviewDetails | None:
        """Get a review by ID with file metadata and summary."""
        with self.session_factory() as db:
            review = ReviewRepository(db).find_by_id(review_id)
            if review is None:
                return None
            return self._details(db, review)

    def list_reviews(
        self,
        status: ReviewStatus | str | None = None,
        repository_path: str | None = None,
        source_type: SourceType | str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[ReviewListItem]:
        """List reviews (newest first) with pagination and filtering."""
        status = ReviewStatus(status) if status is not None else None
        source_type = SourceType(source_type) if source_type is not None else None

        with self.session_factory() as db:
            reviews, total = ReviewRepository(db).find_all(
                status=status,
                repository_path=repository_path,
                source_type=source_type,
                page=page,
                page_size=page_size,
            )
            items = [
                ReviewListItem(review=review, summary=self._details(db, review).summary)
                for review in reviews
            ]
        return Page(data=items, total=total, page=page, page_size=page_size)

    def update(self, review_id: str, status: ReviewStatus | str) -> ReviewDetails:
        with self.session_factory.begin() as db:
            review = ReviewRepository(db).update(review_id, status=ReviewStatus(status))
            if review is None:
                raise not_found(review_id)
            return self._details(db, review)

    def delete(self, review_id: str) -> None:
        """Delete a review, its file records and (by cascade) its comments."""
        with self.session_factory.begin() as db:
            reviews = ReviewRepository(db)
            if reviews.find_by_id(review_id) is None:
                raise not_found(review_id)
            removed = ReviewFileRepository(db).delete_by_review(review_id)
            reviews.delete(review_id)
        logger.info("Deleted review %s (%d file records)", review_id, removed)

    def get_files(self, review_id: str) -> list[ReviewFile]:
        """File metadata of a review, without hunks."""
        with self.session_factory() as db:
            review = ReviewRepository(db).find_by_id(review_id)
            if review is None:
                raise not_found(review_id)
            return self._details(db, review).files

    def get_file_hunks(self, review_id: str, file_path: str) -> list[DiffHunk]:
        """Hunks of one file, loaded lazily.

        Returns an empty list when no hunks can be found; callers show
        "hunks unavailable" instead of failing.
        """
        with self.session_factory() as db:
            review = ReviewRepository(db).find_by_id(review_id)
            if review is None:
                raise not_found(review_id)
            return self._file_hunks(db, review, file_path)

    def get_stats(self, repository_path: str | None = None) -> ReviewStats:
        """Count reviews per status, optionally for one repository only."""
        with self.session_factory() as db:
            reviews = ReviewRepository(db)
            return ReviewStats(
                total=reviews.count_all(repository_path),
                in_progress=reviews.count_by_status(
                    ReviewStatus.IN_PROGRESS, repository_path
                ),
                approved=reviews.count_by_status(ReviewStatus.APPROVED, repository_path),
                changes_requested=reviews.count_by_status(
                    ReviewStatus.CHANGES_REQUESTED, repository_path
                ),
            )

    def get_latest_id(self) -> str | None:
        """ID of the newest review, or None when there are none."""
        with self.session_factory() as db:
            return ReviewRepository(db).find_latest_id()

    def resolve(self, review_id: str) -> ReviewResolution:
        """Approve a review and resolve all of its open comments."""
        with self.session_factory.begin() as db:
            reviews = ReviewRepository(db)
            review = reviews.find_by_id(review_id)
            if review is None:
                raise not_found(review_id)

            comments = CommentRepository(db)
            total = comments.count_by_review(review_id)
            resolved = comments.resolve_all(review_id)
            reviews.update(review_id, status=ReviewStatus.APPROVED)

        logger.info("Resolved review %s (%d comments resolved)", review_id, resolved)
        return ReviewResolution(
            review_id=review_id,
            previous_status=review.status,
            new_status=ReviewStatus.APPROVED,
            comments_resolved=resolved,
            comments_already_resolved=total - resolved,
        )

    def add_comment(
        self,
        review_id: str,
        file_path: str,
        content: str,
        line_number: int | None = None,
        line_type: LineType | str | None = None,
        suggestion: str | None = None,
    ) -> Comment:
        with self.session_factory.begin() as db:
            if ReviewRepository(db).find_by_id(review_id) is None:
                raise not_found(review_id)
            return CommentRepository(db).create(
                Comment(
                    review_id=review_id,
                    file_path=file_path,
                    content=content,
                    line_number=line_number,
                    line_type=LineType(line_type) if line_type else None,
                    suggestion=suggestion,
                )
            )

    def list_comments(self, review_id: str) -> list[Comment]:
        with self.session_factory() as db:
            return CommentRepository(db).find_by_review(review_id)

    def resolve_comment(self, comment_id: str, resolved: bool = True) -> Comment:
        with self.session_factory.begin() as db:
            comment = CommentRepository(db).set_resolved(comment_id, resolved)
            if comment is None:
                raise ReviewError(f"Comment not found: {comment_id}", ErrorCode.NOT_FOUND)
            return comment

    def export_markdown(
        self,
        review_id: str,
        include_resolved: bool = True,
        include_diff_snippets: bool = True,
    ) -> str | None:
        with self.session_factory() as db:
            export = self._export(db, review_id)
            if export is None:
                return None
            return export.to_markdown(
                include_resolved=include_resolved,
                include_diff_snippets=include_diff_snippets,
            )

    def export_json(self, review_id: str) -> dict | None:
        with self.session_factory() as db:
            export = self._export(db, review_id)
            return export.to_json() if export else None

    def _export(self, db: Session, review_id: str) -> ReviewExport | None:
        review = ReviewRepository(db).find_by_id(review_id)
        if review is None:
            return None
        return ReviewExport(
            details=self._details(db, review),
            comments=CommentRepository(db).find_by_review(review_id),
            load_hunks=lambda path: self._file_hunks(db, review, path),
        )

    def _details(self, db: Session, review: Review) -> ReviewDetails:
        """Build ReviewDetails from whichever snapshot format is stored."""
        snapshot = decode_snapshot(review.snapshot_data)
        embedded = snapshot.embedded_files
        if embedded is None:
            files = ReviewFileRepository(db).find_by_review(review.id)
        else:
            files = [
                ReviewFile.from_diff_file(
                    review.id, f, store_hunks=False, persistent=False
                )
                for f in embedded
            ]
        return ReviewDetails(
            review=review,
            files=files,
            summary=summarize(files),
            repository=snapshot.repository,
        )

    def _file_hunks(self, db: Session, review: Review, file_path: str) -> list[DiffHunk]:
        stored = ReviewFileRepository(db).find_by_review_and_path(review.id, file_path)
        if stored is not None and stored.hunks_data is not None:
            return stored.hunks

        embedded = decode_snapshot(review.snapshot_data).embedded_files or []
        source = get_diff_source(review.source_type, review.source_ref)
        if not source.stores_hunks:
            if stored is not None:
                old_path = stored.old_path
            else:
                old_path = next(
                    (f.old_path for f in embedded if f.path == file_path), None
                )
            logger.debug("Regenerating hunks for %s in review %s", file_path, review.id)
            diff_file = parse_single_file_diff(
                source.get_file_diff(self.git, file_path, old_path), file_path
            )
            return diff_file.hunks if diff_file else []

        for f in embedded:
            if f.path == file_path or f.old_path == file_path:
                return f.hunks
        return []
