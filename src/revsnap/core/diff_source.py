"""Review sources: where a review's diff comes from and where its hunks live."""

from abc import ABC, abstractmethod

from revsnap.core.git import GitService
from revsnap.errors import ErrorCode, ReviewError
from revsnap.models.review import SourceType


class DiffSource(ABC):
    """Abstract base class for review sources."""

    @property
    @abstractmethod
    def source_type(self) -> SourceType:
        """Type identifier for this source."""

    @property
    def source_ref(self) -> str | None:
        """Reference stored alongside the review (branch name, SHA list)."""
        return None

    @property
    def stores_hunks(self) -> bool:
        """Whether hunks are persisted at creation.

        Sources backed by immutable git history regenerate hunks on demand
        instead.
        """
        return False

    @abstractmethod
    def get_diff(self, git: GitService) -> str:
        """Fetch the raw diff text for the whole review."""

    @abstractmethod
    def get_file_diff(
        self, git: GitService, file_path: str, old_path: str | None = None
    ) -> str:
        """Fetch the raw diff text for one file of the review.

        ``old_path`` is the pre-rename path, so git can pair both sides of a
        rename instead of reporting the file as added.
        """

    @abstractmethod
    def get_base_ref(self, git: GitService) -> str | None:
        """Ref the review is based on."""

    def check(self, git: GitService) -> None:
        """Raise ReviewError if the source cannot produce a review."""

    def get_description(self) -> str:
        return self.source_type.value


class StagedDiffSource(DiffSource):
    """Diff of staged changes (index vs HEAD)."""

    @property
    def source_type(self) -> SourceType:
        return SourceType.STAGED

    @property
    def stores_hunks(self) -> bool:
        return True

    def check(self, git: GitService) -> None:
        if not git.has_staged_changes():
            raise ReviewError("No staged changes to review", ErrorCode.NO_STAGED_CHANGES)

    def get_diff(self, git: GitService) -> str:
        return git.get_staged_diff()

    def get_file_diff(self, git: GitService, file_path: str, old_path: str | None = None) -> str:
        return git.get_staged_file_diff(file_path, old_path)

    def get_base_ref(self, git: GitService) -> str | None:
        return git.get_head_sha()

    def get_description(self) -> str:
        return "staged changes"


class BranchDiffSource(DiffSource):
    """What a branch introduces that HEAD lacks (HEAD...branch)."""

    def __init__(self, branch: str):
        self.branch = branch

    @property
    def source_type(self) -> SourceType:
        return SourceType.BRANCH

    @property
    def source_ref(self) -> str:
        return self.branch

    def get_diff(self, git: GitService) -> str:
        return git.get_branch_diff(self.branch)

    def get_file_diff(self, git: GitService, file_path: str, old_path: str | None = None) -> str:
        return git.get_branch_file_diff(self.branch, file_path, old_path)

    def get_base_ref(self, git: GitService) -> str | None:
        return git.get_head_sha()

    def get_description(self) -> str:
        return f"HEAD...{self.branch}"


class CommitsDiffSource(DiffSource):
    """Each commit's own patch, concatenated in the order given."""

    def __init__(self, shas: list[str]):
        self.shas = shas

    @property
    def source_type(self) -> SourceType:
        return SourceType.COMMITS

    @property
    def source_ref(self) -> str:
        return ",".join(self.shas)

    def get_diff(self, git: GitService) -> str:
        return git.get_commits_diff(self.shas)

    def get_file_diff(self, git: GitService, file_path: str, old_path: str | None = None) -> str:
        return git.get_commits_file_diff(self.shas, file_path, old_path)

    def get_base_ref(self, git: GitService) -> str | None:
        # Last SHA as given by the caller; the list is not reordered.
        return self.shas[-1]

    def get_description(self) -> str:
        return "commits " + ", ".join(sha[:7] for sha in self.shas)


def get_diff_source(
    source_type: SourceType | str,
    source_ref: str | None = None,
) -> DiffSource:
    """Factory function to create the source for a review.

    Used both when creating a review and when reading one back from its
    stored ``source_type``/``source_ref``.
    """
    try:
        source_type = SourceType(source_type)
    except ValueError:
        raise ReviewError(
            f"Invalid source type: {source_type!r}", ErrorCode.INVALID_SOURCE
        ) from None

    if source_type == SourceType.STAGED:
        return StagedDiffSource()
    if source_type == SourceType.BRANCH and source_ref:
        return BranchDiffSource(source_ref)
    if source_type == SourceType.COMMITS and source_ref:
        shas = [sha.strip() for sha in source_ref.split(",") if sha.strip()]
        if shas:
            return CommitsDiffSource(shas)
    raise ReviewError(
        "Invalid source type or missing source ref", ErrorCode.INVALID_SOURCE
    )
