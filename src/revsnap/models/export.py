"""Export format models."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from revsnap.core.snippet import find_snippet
from revsnap.models.comment import Comment
from revsnap.models.diff import DiffFile, DiffHunk, FileStatus
from revsnap.models.review import ReviewDetails, ReviewFile, SourceType

FILE_BADGES = {
    FileStatus.ADDED: "🆕",
    FileStatus.DELETED: "🗑️",
    FileStatus.MODIFIED: "📝",
    FileStatus.RENAMED: "📋",
}


class ExportFormat(Enum):
    """Supported export formats."""

    MARKDOWN = "markdown"
    JSON = "json"


def format_date(value: datetime) -> str:
    return value.strftime("%B %d, %Y %H:%M")


@dataclass
class ReviewExport:
    """Handles exporting a review and its comments.

    ``load_hunks`` is called lazily, once per commented file, when diff
    snippets are requested.
    """

    details: ReviewDetails
    comments: list[Comment]
    load_hunks: Callable[[str], list[DiffHunk]]
    _hunk_cache: dict[str, list[DiffHunk]] = field(default_factory=dict, repr=False)

    def _file_for(self, file_path: str) -> ReviewFile | None:
        for f in self.details.files:
            if f.file_path == file_path or f.old_path == file_path:
                return f
        return None

    def _snippet(self, comment: Comment) -> str | None:
        review_file = self._file_for(comment.file_path)
        if review_file is None or comment.is_file_level:
            return None

        path = review_file.file_path
        if path not in self._hunk_cache:
            self._hunk_cache[path] = self.load_hunks(path)
        diff_file = DiffFile(
            old_path=review_file.old_path or path,
            new_path=path,
            status=review_file.status,
            hunks=self._hunk_cache[path],
        )
        return find_snippet(diff_file, comment.line_number, comment.line_type)

    def _source_line(self) -> str | None:
        review = self.details.review
        if review.source_type == SourceType.BRANCH and review.source_ref:
            return f"Reviewing changes: HEAD...{review.source_ref}"
        if review.source_type == SourceType.COMMITS and review.source_ref:
            shas = ", ".join(sha.strip()[:7] for sha in review.source_ref.split(","))
            return f"Reviewing commits: {shas}"
        return None

    def to_markdown(
        self,
        include_resolved: bool = True,
        include_diff_snippets: bool = True,
    ) -> str:
        """Export to Markdown.

        Sections:
        1. Overview table
        2. Changes summary
        3. Comments summary and per-file comments (with diff snippets)
        4. Files changed
        """
        review = self.details.review
        repository = self.details.repository
        summary = self.details.summary
        comments = [
            c for c in self.comments if include_resolved or not c.resolved
        ]

        lines = []

        # Header
        lines.append(f"# Code Review: {repository.name}")
        lines.append("")
        source_line = self._source_line()
        if source_line:
            lines.append(source_line)
            lines.append("")

        # Overview
        lines.append("## Overview")
        lines.append("")
        lines.append("| Field | Value |")
        lines.append("|-------|-------|")
        lines.append(f"| Repository | {repository.name} |")
        lines.append(f"| Branch | {repository.branch} |")
        lines.append(f"| Status | {review.status.label} |")
        lines.append(f"| Created | {format_date(review.created_at)} |")
        if review.base_ref:
            lines.append(f"| Base Commit | `{review.base_ref[:8]}` |")
        lines.append("")

        # Changes summary
        lines.append("## Changes Summary")
        lines.append("")
        lines.append(f"- **{summary.total_files}** files changed")
        lines.append(f"- **+{summary.total_additions}** additions")
        lines.append(f"- **-{summary.total_deletions}** deletions")
        if summary.files_added > 0:
            lines.append(f"- {summary.files_added} files added")
        if summary.files_modified > 0:
            lines.append(f"- {summary.files_modified} files modified")
        if summary.files_deleted > 0:
            lines.append(f"- {summary.files_deleted} files deleted")
        if summary.files_renamed > 0:
            lines.append(f"- {summary.files_renamed} files renamed")
        lines.append("")

        if comments:
            resolved = sum(1 for c in comments if c.resolved)
            unresolved = len(comments) - resolved
            with_suggestions = sum(1 for c in comments if c.suggestion)

            lines.append("## Comments Summary")
            lines.append("")
            lines.append(f"- **{len(comments)}** total comments")
            if unresolved > 0:
                lines.append(f"- **{unresolved}** unresolved")
            if resolved > 0:
                lines.append(f"- **{resolved}** resolved")
            if with_suggestions > 0:
                lines.append(f"- **{with_suggestions}** with suggestions")
            lines.append("")

            lines.append("## Review Comments")
            lines.append("")

            by_file: dict[str, list[Comment]] = {}
            for comment in comments:
                by_file.setdefault(comment.file_path, []).append(comment)

            for file_path, file_comments in by_file.items():
                lines.append(f"### {file_path}")
                lines.append("")

                for comment in sorted(file_comments, key=lambda c: c.line_number or 0):
                    badge = " ✅" if comment.resolved else ""
                    if comment.is_file_level:
                        heading = "File-level comment"
                    else:
                        heading = f"Line {comment.line_number}"
                    lines.append(f"#### {heading}{badge}")
                    lines.append("")

                    if include_diff_snippets:
                        snippet = self._snippet(comment)
                        if snippet:
                            lines.append("```diff")
                            lines.append(snippet)
                            lines.append("```")
                            lines.append("")

                    lines.append(comment.content)
                    lines.append("")

                    if comment.suggestion:
                        lines.append("**Suggested change:**")
                        lines.append("")
                        lines.append("```")
                        lines.append(comment.suggestion)
                        lines.append("```")
                        lines.append("")

        # Files changed
        lines.append("## Files Changed")
        lines.append("")
        for f in self.details.files:
            badge = FILE_BADGES[f.status]
            lines.append(f"- {badge} `{f.file_path}` (+{f.additions}/-{f.deletions})")
        lines.append("")

        lines.append("---")
        lines.append("")
        lines.append(f"*Exported from revsnap on {format_date(datetime.now())}*")

        return "\n".join(lines)

    def to_json(self) -> dict:
        """Export to JSON format."""
        data = self.details.to_dict()
        data["comments"] = [c.to_dict() for c in self.comments]
        return data
