"""Parse unified diff text (as emitted by ``git diff``) into DiffFiles."""

import re

from unidiff.constants import (
    LINE_TYPE_ADDED,
    LINE_TYPE_CONTEXT,
    LINE_TYPE_REMOVED,
    RE_HUNK_HEADER,
    RE_NO_NEWLINE_MARKER,
)

from revsnap.models.diff import DiffFile, DiffHunk, DiffLine, FileStatus, LineType

FILE_MARKER = "diff --git"
RE_FILE_HEADER = re.compile(r"^diff --git a/(.+) b/(.+)$")


def parse_diff(diff_text: str) -> list[DiffFile]:
    """Parse diff text into one DiffFile per ``diff --git`` block.

    Empty or whitespace-only text yields an empty list. Blocks that do not
    start with a recognizable file header are dropped.
    """
    if not diff_text.strip():
        return []

    files = []
    for block in split_into_blocks(diff_text):
        diff_file = parse_file_block(block)
        if diff_file is not None:
            files.append(diff_file)
    return files


def parse_single_file_diff(diff_text: str, file_path: str | None = None) -> DiffFile | None:
    """Parse the diff of exactly one file.

    Several blocks for the same file (one per commit) are merged in order;
    the first block's paths and status are kept. With ``file_path``, blocks
    for any other path (e.g. the old side of a rename git could not pair)
    are dropped first.
    """
    files = parse_diff(diff_text)
    if file_path is not None:
        files = [f for f in files if f.path == file_path]
    if not files:
        return None
    return _merge(files)


def merge_by_path(files: list[DiffFile]) -> list[DiffFile]:
    """Merge files that appear more than once (e.g. touched by several commits).

    Order of first appearance is kept.
    """
    grouped: dict[str, list[DiffFile]] = {}
    for f in files:
        grouped.setdefault(f.path, []).append(f)
    return [group[0] if len(group) == 1 else _merge(group) for group in grouped.values()]


def _merge(files: list[DiffFile]) -> DiffFile:
    first = files[0]
    return DiffFile(
        old_path=first.old_path,
        new_path=first.new_path,
        status=first.status,
        hunks=[hunk for f in files for hunk in f.hunks],
    )


def split_into_blocks(diff_text: str) -> list[list[str]]:
    """Split diff text into per-file line blocks at each ``diff --git`` line."""
    blocks = []
    current: list[str] = []

    for line in diff_text.split("\n"):
        if line.startswith(FILE_MARKER):
            if current:
                blocks.append(current)
            current = [line]
        else:
            current.append(line)

    if current:
        blocks.append(current)
    return blocks


def parse_file_block(lines: list[str]) -> DiffFile | None:
    """Best-effort parse of one file block.

    This is the only place malformed input is tolerated: a block whose first
    line is not a ``diff --git a/<old> b/<new>`` header (a preamble, or
    anything unparseable) yields None instead of an error.
    """
    if not lines:
        return None
    match = RE_FILE_HEADER.match(lines[0])
    if match is None:
        return None

    old_path, new_path = match.group(1), match.group(2)
    for line in lines[1:]:
        if line.startswith("rename from "):
            old_path = line[len("rename from "):]
        elif line.startswith("rename to "):
            new_path = line[len("rename to "):]

    return DiffFile(
        old_path=old_path,
        new_path=new_path,
        status=infer_status(lines, old_path, new_path),
        hunks=parse_hunks(lines),
    )


def infer_status(lines: list[str], old_path: str, new_path: str) -> FileStatus:
    if any(line.startswith("deleted file mode") for line in lines):
        return FileStatus.DELETED
    if any(line.startswith("new file mode") for line in lines):
        return FileStatus.ADDED
    if any(line.startswith("rename from") for line in lines) or old_path != new_path:
        return FileStatus.RENAMED
    return FileStatus.MODIFIED


def parse_hunks(lines: list[str]) -> list[DiffHunk]:
    """Collect the hunks of a file block.

    Line numbers are tracked from each hunk header; body lines outside a hunk
    (file headers, index lines) and unrecognized lines inside one are skipped.
    """
    hunks = []
    current: DiffHunk | None = None
    old_no = new_no = 0

    for line in lines:
        header = RE_HUNK_HEADER.match(line)
        if header:
            if current is not None:
                hunks.append(current)
            old_no = int(header.group(1))
            new_no = int(header.group(3))
            current = DiffHunk(
                old_start=old_no,
                old_lines=int(header.group(2) or 1),
                new_start=new_no,
                new_lines=int(header.group(4) or 1),
            )
            continue

        if current is None:
            continue

        if line.startswith(LINE_TYPE_ADDED) and not line.startswith("+++"):
            current.lines.append(
                DiffLine(LineType.ADDED, line[1:], new_line_no=new_no)
            )
            new_no += 1
        elif line.startswith(LINE_TYPE_REMOVED) and not line.startswith("---"):
            current.lines.append(
                DiffLine(LineType.REMOVED, line[1:], old_line_no=old_no)
            )
            old_no += 1
        elif line.startswith(LINE_TYPE_CONTEXT):
            current.lines.append(
                DiffLine(LineType.CONTEXT, line[1:], old_no, new_no)
            )
            old_no += 1
            new_no += 1
        elif RE_NO_NEWLINE_MARKER.match(line):
            continue

    if current is not None:
        hunks.append(current)
    return hunks
