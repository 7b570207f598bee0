"""Shared fixtures: sample diffs, a fake git collaborator and a temp database."""

import pytest

from revsnap.core.diff_parser import split_into_blocks
from revsnap.core.snapshot import ReviewSnapshotManager
from revsnap.db.database import create_session_factory
from revsnap.models.review import RepositoryInfo

MODIFIED_DIFF = """\
diff --git a/file.txt b/file.txt
--- a/file.txt
+++ b/file.txt
@@ -1,3 +1,4 @@
 line 1
-old line 2
+new line 2
+added line
 line 3
"""

NEW_FILE_DIFF = """\
diff --git a/new.py b/new.py
new file mode 100644
index 0000000..3b18e51
--- /dev/null
+++ b/new.py
@@ -0,0 +1,2 @@
+print("hello")
+print("world")
"""

DELETED_FILE_DIFF = """\
diff --git a/old.py b/old.py
deleted file mode 100644
index 1234567..0000000
--- a/old.py
+++ /dev/null
@@ -1,2 +0,0 @@
-x = 1
-y = 2
"""

RENAME_DIFF = """\
diff --git a/src/a.py b/src/b.py
similarity index 100%
rename from src/a.py
rename to src/b.py
"""

SECOND_FILE_TXT_DIFF = """\
diff --git a/file.txt b/file.txt
--- a/file.txt
+++ b/file.txt
@@ -4,2 +4,3 @@
 line 4
+line 4.5
 line 5
"""

STAGED_DIFF = MODIFIED_DIFF + NEW_FILE_DIFF

HEAD_SHA = "0123456789abcdef0123456789abcdef01234567"


def only_path(diff_text: str, file_path: str) -> str:
    """Keep only the blocks of ``diff_text`` that touch ``file_path``."""
    blocks = [
        "\n".join(block)
        for block in split_into_blocks(diff_text)
        if block and block[0].endswith(f" b/{file_path}")
    ]
    return "\n".join(blocks)


class FakeGit:
    """In-memory stand-in for GitService."""

    def __init__(self):
        self.repo = True
        self.commits = True
        self.head_sha = HEAD_SHA
        self.staged_diff = ""
        self.branch_diffs: dict[str, str] = {}
        self.commit_diffs: dict[str, str] = {}
        self.repository = RepositoryInfo(
            name="project", branch="main", remote=None, path="/work/project"
        )
        self.calls: list[tuple] = []

    def is_repo(self) -> bool:
        return self.repo

    def has_commits(self) -> bool:
        return self.commits

    def has_staged_changes(self) -> bool:
        return bool(self.staged_diff.strip())

    def get_head_sha(self) -> str | None:
        return self.head_sha

    def get_repository_info(self) -> RepositoryInfo:
        return self.repository

    def get_staged_diff(self) -> str:
        self.calls.append(("staged",))
        return self.staged_diff

    def get_staged_file_diff(self, file_path: str, old_path: str | None = None) -> str:
        self.calls.append(("staged_file", file_path, old_path))
        return only_path(self.staged_diff, file_path)

    def get_branch_diff(self, ref: str) -> str:
        self.calls.append(("branch", ref))
        return self.branch_diffs.get(ref, "")

    def get_branch_file_diff(self, ref: str, file_path: str, old_path: str | None = None) -> str:
        self.calls.append(("branch_file", ref, file_path, old_path))
        return only_path(self.branch_diffs.get(ref, ""), file_path)

    def get_commits_diff(self, shas: list[str]) -> str:
        self.calls.append(("commits", tuple(shas)))
        return "\n".join(self.commit_diffs[sha] for sha in shas)

    def get_commits_file_diff(
        self, shas: list[str], file_path: str, old_path: str | None = None
    ) -> str:
        self.calls.append(("commits_file", tuple(shas), file_path, old_path))
        return "\n".join(only_path(self.commit_diffs[sha], file_path) for sha in shas)


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def session_factory(tmp_path):
    return create_session_factory(tmp_path / "db" / "reviews.db")


@pytest.fixture
def manager(fake_git, session_factory) -> ReviewSnapshotManager:
    return ReviewSnapshotManager(git=fake_git, session_factory=session_factory)
