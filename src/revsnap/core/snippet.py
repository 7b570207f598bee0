"""Locate a commented line in a file's hunks and render its surroundings."""

from revsnap.models.diff import DiffFile, DiffLine, LineType

CONTEXT_LINES = 2

PREFIXES = {
    LineType.ADDED: "+",
    LineType.REMOVED: "-",
    LineType.CONTEXT: " ",
}


def format_diff_line(line: DiffLine) -> str:
    return f"{PREFIXES[line.line_type]}{line.content}"


def find_snippet(
    file: DiffFile,
    line_number: int,
    line_type: LineType | None = None,
) -> str | None:
    """Render up to two lines either side of the matching line.

    Removed lines are matched on their old line number, everything else on
    the new one. The window never crosses the hunk boundary. Returns None
    when no hunk holds the line (e.g. hunks were never stored), which callers
    treat as "no snippet".
    """
    # Without a kind, the number refers to the new file.
    kinds = {line_type} if line_type else {LineType.ADDED, LineType.CONTEXT}

    for hunk in file.hunks:
        for i, line in enumerate(hunk.lines):
            if line.line_type in kinds and line.line_no == line_number:
                start = max(0, i - CONTEXT_LINES)
                end = min(len(hunk.lines), i + CONTEXT_LINES + 1)
                return "\n".join(
                    format_diff_line(context_line)
                    for context_line in hunk.lines[start:end]
                )
    return None
