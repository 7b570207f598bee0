from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import STAGED_DIFF
from revsnap.core.diff_parser import parse_diff
from revsnap.db.repositories import (
    CommentRepository,
    ReviewFileRepository,
    ReviewRepository,
)
from revsnap.models.comment import Comment
from revsnap.models.review import (
    NormalizedSnapshot,
    RepositoryInfo,
    Review,
    ReviewFile,
    ReviewStatus,
    SourceType,
)


def make_review(review_id="r1", repository_path="/work/project", **kwargs) -> Review:
    snapshot = NormalizedSnapshot(
        repository=RepositoryInfo("project", "main", None, repository_path)
    )
    return Review(
        id=review_id,
        repository_path=repository_path,
        source_type=kwargs.pop("source_type", SourceType.STAGED),
        snapshot_data=snapshot.to_json(),
        **kwargs,
    )


def stored_review(session_factory, review_id="r1", **kwargs) -> Review:
    with session_factory.begin() as db:
        return ReviewRepository(db).create(make_review(review_id, **kwargs))


def review_files(review_id="r1", store_hunks=True) -> list[ReviewFile]:
    return [
        ReviewFile.from_diff_file(review_id, f, store_hunks=store_hunks)
        for f in parse_diff(STAGED_DIFF)
    ]


def test_create_and_find_review(session_factory):
    stored_review(session_factory, base_ref="abc123")

    with session_factory() as db:
        review = ReviewRepository(db).find_by_id("r1")

    assert review.base_ref == "abc123"
    assert review.status == ReviewStatus.IN_PROGRESS
    assert review.source_type == SourceType.STAGED


def test_find_missing_review(session_factory):
    with session_factory() as db:
        assert ReviewRepository(db).find_by_id("nope") is None


def test_find_all_filters_and_paginates(session_factory):
    stored_review(session_factory, "r1")
    stored_review(session_factory, "r2", status=ReviewStatus.APPROVED)
    stored_review(session_factory, "r3", repository_path="/work/other")
    stored_review(session_factory, "r4", source_type=SourceType.BRANCH, source_ref="f")

    with session_factory() as db:
        reviews = ReviewRepository(db)
        approved, approved_total = reviews.find_all(status=ReviewStatus.APPROVED)
        other, _ = reviews.find_all(repository_path="/work/other")
        branch, _ = reviews.find_all(source_type=SourceType.BRANCH)
        first_page, total = reviews.find_all(page=1, page_size=3)
        second_page, _ = reviews.find_all(page=2, page_size=3)

    assert [r.id for r in approved] == ["r2"]
    assert approved_total == 1
    assert [r.id for r in other] == ["r3"]
    assert [r.id for r in branch] == ["r4"]
    assert total == 4
    assert [r.id for r in first_page] == ["r4", "r3", "r2"]
    assert [r.id for r in second_page] == ["r1"]


def test_update_status(session_factory):
    created = stored_review(session_factory)

    with session_factory.begin() as db:
        updated = ReviewRepository(db).update("r1", status=ReviewStatus.APPROVED)

    assert updated.status == ReviewStatus.APPROVED
    assert updated.updated_at >= created.updated_at


def test_update_missing_review(session_factory):
    with session_factory.begin() as db:
        assert ReviewRepository(db).update("nope", status=ReviewStatus.APPROVED) is None


def test_counts(session_factory):
    stored_review(session_factory, "r1")
    stored_review(session_factory, "r2", status=ReviewStatus.APPROVED)

    with session_factory() as db:
        reviews = ReviewRepository(db)
        assert reviews.count_all() == 2
        assert reviews.count_by_status(ReviewStatus.APPROVED) == 1
        assert reviews.count_by_status(ReviewStatus.CHANGES_REQUESTED) == 0


def test_create_bulk_and_metadata_listing(session_factory):
    stored_review(session_factory)

    with session_factory.begin() as db:
        ReviewFileRepository(db).create_bulk(review_files())

    with session_factory() as db:
        files = ReviewFileRepository(db).find_by_review("r1")

    assert [f.file_path for f in files] == ["file.txt", "new.py"]
    assert all(f.hunks_data is None for f in files)
    assert [(f.additions, f.deletions) for f in files] == [(2, 1), (2, 0)]


def test_find_by_path_includes_hunks(session_factory):
    stored_review(session_factory)
    with session_factory.begin() as db:
        ReviewFileRepository(db).create_bulk(review_files())

    with session_factory() as db:
        f = ReviewFileRepository(db).find_by_review_and_path("r1", "file.txt")
        missing = ReviewFileRepository(db).find_by_review_and_path("r1", "nope.txt")

    assert f.hunks[0].lines[1].content == "old line 2"
    assert missing is None


def test_create_bulk_is_all_or_nothing(session_factory):
    stored_review(session_factory)
    files = review_files()
    duplicate = ReviewFile.from_diff_file("r1", parse_diff(STAGED_DIFF)[0], store_hunks=True)

    with session_factory() as db:
        repo = ReviewFileRepository(db)
        with pytest.raises(IntegrityError):
            repo.create_bulk(files + [duplicate])
        assert repo.count_by_review("r1") == 0
        # The surrounding transaction is still usable.
        assert ReviewRepository(db).find_by_id("r1") is not None
        db.commit()

    with session_factory() as db:
        assert ReviewFileRepository(db).count_by_review("r1") == 0


def test_create_bulk_requires_existing_review(session_factory):
    with session_factory() as db:
        with pytest.raises(IntegrityError):
            ReviewFileRepository(db).create_bulk(review_files("missing"))


def test_create_bulk_with_nothing_to_insert(session_factory):
    with session_factory.begin() as db:
        ReviewFileRepository(db).create_bulk([])


def test_deleting_review_cascades_to_comments_and_files(session_factory):
    stored_review(session_factory)
    with session_factory.begin() as db:
        ReviewFileRepository(db).create_bulk(review_files())
        CommentRepository(db).create(Comment("r1", "file.txt", "looks off", line_number=2))

    with session_factory.begin() as db:
        assert ReviewRepository(db).delete("r1")

    with session_factory() as db:
        assert CommentRepository(db).count_by_review("r1") == 0
        assert ReviewFileRepository(db).count_by_review("r1") == 0


def test_delete_missing_review(session_factory):
    with session_factory.begin() as db:
        assert not ReviewRepository(db).delete("nope")


def test_comments_are_ordered_file_level_first(session_factory):
    stored_review(session_factory)
    with session_factory.begin() as db:
        comments = CommentRepository(db)
        comments.create(Comment("r1", "b.py", "later file", line_number=1))
        comments.create(Comment("r1", "a.py", "line ten", line_number=10))
        comments.create(Comment("r1", "a.py", "whole file"))
        comments.create(Comment("r1", "a.py", "line two", line_number=2))

    with session_factory() as db:
        found = CommentRepository(db).find_by_review("r1")

    assert [c.content for c in found] == ["whole file", "line two", "line ten", "later file"]


def test_resolve_comment(session_factory):
    stored_review(session_factory)
    with session_factory.begin() as db:
        created = CommentRepository(db).create(Comment("r1", "a.py", "fix"))

    with session_factory.begin() as db:
        resolved = CommentRepository(db).set_resolved(created.id, True)
        missing = CommentRepository(db).set_resolved("nope", True)

    assert resolved.resolved
    assert missing is None


def test_counts_for_one_repository(session_factory):
    stored_review(session_factory, "r1")
    stored_review(session_factory, "r2", status=ReviewStatus.APPROVED)
    stored_review(
        session_factory, "r3", repository_path="/work/other", status=ReviewStatus.APPROVED
    )

    with session_factory() as db:
        reviews = ReviewRepository(db)
        assert reviews.count_all("/work/project") == 2
        assert reviews.count_all("/work/other") == 1
        assert reviews.count_by_status(ReviewStatus.APPROVED, "/work/project") == 1
        assert reviews.count_by_status(ReviewStatus.APPROVED) == 2


def test_find_latest_id(session_factory):
    with session_factory() as db:
        assert ReviewRepository(db).find_latest_id() is None

    stored_review(session_factory, "old", created_at=datetime(2024, 1, 1))
    stored_review(session_factory, "new", created_at=datetime(2024, 6, 1))
    stored_review(session_factory, "middle", created_at=datetime(2024, 3, 1))

    with session_factory() as db:
        assert ReviewRepository(db).find_latest_id() == "new"


def test_resolve_all_comments(session_factory):
    stored_review(session_factory)
    stored_review(session_factory, "r2")
    with session_factory.begin() as db:
        comments = CommentRepository(db)
        done = comments.create(Comment("r1", "a.py", "done"))
        comments.create(Comment("r1", "a.py", "open", line_number=3))
        comments.create(Comment("r2", "a.py", "other review"))
        comments.set_resolved(done.id, True)

    with session_factory.begin() as db:
        assert CommentRepository(db).resolve_all("r1") == 1

    with session_factory() as db:
        comments = CommentRepository(db)
        assert all(c.resolved for c in comments.find_by_review("r1"))
        assert not any(c.resolved for c in comments.find_by_review("r2"))
        assert comments.resolve_all("nope") == 0
