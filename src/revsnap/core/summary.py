"""Aggregate statistics over changed files."""

from collections.abc import Iterable
from typing import Protocol

from revsnap.models.diff import DiffSummary, FileStatus


class ChangedFile(Protocol):
    status: FileStatus

    @property
    def additions(self) -> int: ...

    @property
    def deletions(self) -> int: ...


def summarize(files: Iterable[ChangedFile]) -> DiffSummary:
    """Reduce a set of files to totals and per-status counts.

    Works on parsed DiffFiles and stored ReviewFile metadata alike.
    """
    files = list(files)
    return DiffSummary(
        total_files=len(files),
        total_additions=sum(f.additions for f in files),
        total_deletions=sum(f.deletions for f in files),
        files_added=sum(1 for f in files if f.status == FileStatus.ADDED),
        files_modified=sum(1 for f in files if f.status == FileStatus.MODIFIED),
        files_deleted=sum(1 for f in files if f.status == FileStatus.DELETED),
        files_renamed=sum(1 for f in files if f.status == FileStatus.RENAMED),
    )
