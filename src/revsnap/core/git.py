"""Git collaborator: every git interaction goes through the git binary."""

import logging
import subprocess
from pathlib import Path

from revsnap.models.review import RepositoryInfo

logger = logging.getLogger(__name__)

# Fixed output format, independent of the user's diff configuration.
DIFF_OPTIONS = (
    "--no-color",
    "--no-ext-diff",
    "--no-textconv",
    "--src-prefix=a/",
    "--dst-prefix=b/",
    "--find-renames",
)


def pathspec(file_path: str, old_path: str | None = None) -> list[str]:
    """Pathspec for one file; both sides of a rename so git can pair them."""
    if old_path and old_path != file_path:
        return ["--", old_path, file_path]
    return ["--", file_path]


class GitService:
    """Run git commands against one repository.

    Diff calls raise ``subprocess.CalledProcessError`` when git fails; lookups
    (``is_repo``, ``has_commits``, ``get_head_sha``) answer falsy
    instead.
    """

    def __init__(self, repo_path: Path):
        self.repo_path = Path(repo_path)

    def _run(self, *args: str) -> str:
        result = subprocess.run(
            ["git", "-C", str(self.repo_path), "-c", "core.quotePath=false", *args],
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout

    def _try_run(self, *args: str) -> str | None:
        try:
            return self._run(*args)
        except subprocess.CalledProcessError as e:
            logger.debug(
                "git %s failed in %s: %s", " ".join(args), self.repo_path, e.stderr
            )
            return None

    def is_repo(self) -> bool:
        """Check if the path is a valid git repository."""
        return self._try_run("rev-parse", "--git-dir") is not None

    def has_commits(self) -> bool:
        """Check if the repository has any commits."""
        return self._try_run("rev-parse", "--verify", "HEAD") is not None

    def has_staged_changes(self) -> bool:
        return bool(self._run("diff", "--cached", "--name-only").strip())

    def get_head_sha(self) -> str | None:
        """Get the current HEAD commit SHA (None for repos without commits)."""
        sha = self._try_run("rev-parse", "--verify", "HEAD")
        return sha.strip() if sha else None

    def get_repository_info(self) -> RepositoryInfo:
        """Get repository metadata."""
        root = self._run("rev-parse", "--show-toplevel").strip()
        branch = self._try_run("rev-parse", "--abbrev-ref", "HEAD")
        remote = self._try_run("remote", "get-url", "origin")
        return RepositoryInfo(
            name=Path(root).name or "unknown",
            branch=branch.strip() if branch else "main",
            remote=remote.strip() if remote else None,
            path=root,
        )

    def get_staged_diff(self) -> str:
        """Get unified diff for all staged changes."""
        return self._run("diff", *DIFF_OPTIONS, "--cached")

    def get_staged_file_diff(self, file_path: str, old_path: str | None = None) -> str:
        return self._run("diff", *DIFF_OPTIONS, "--cached", *pathspec(file_path, old_path))

    def get_branch_diff(self, ref: str) -> str:
        """Get what ``ref`` introduces that HEAD lacks."""
        return self._run("diff", *DIFF_OPTIONS, f"HEAD...{ref}")

    def get_branch_file_diff(
        self, ref: str, file_path: str, old_path: str | None = None
    ) -> str:
        return self._run(
            "diff", *DIFF_OPTIONS, f"HEAD...{ref}", *pathspec(file_path, old_path)
        )

    def get_commits_diff(self, shas: list[str]) -> str:
        """Concatenate each commit's own patch, in the order given.

        Commits may be unordered or non-contiguous; each is diffed on its own.
        """
        diffs = [self._run("show", *DIFF_OPTIONS, "--format=", sha) for sha in shas]
        return "\n".join(d for d in diffs if d.strip())

    def get_commits_file_diff(
        self, shas: list[str], file_path: str, old_path: str | None = None
    ) -> str:
        diffs = [
            self._run("show", *DIFF_OPTIONS, "--format=", sha, *pathspec(file_path, old_path))
            for sha in shas
        ]
        return "\n".join(d for d in diffs if d.strip())
