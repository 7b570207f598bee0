import json

from conftest import MODIFIED_DIFF, NEW_FILE_DIFF, STAGED_DIFF
from revsnap.models.review import ReviewStatus, SourceType


def staged_review(manager, fake_git):
    fake_git.staged_diff = STAGED_DIFF
    return manager.create()


def test_export_missing_review(manager):
    assert manager.export_markdown("nope") is None
    assert manager.export_json("nope") is None


def test_markdown_sections(manager, fake_git):
    details = staged_review(manager, fake_git)

    markdown = manager.export_markdown(details.id)

    assert markdown.startswith("# Code Review: project\n")
    assert "| Status | 🔄 In Progress |" in markdown
    assert f"| Base Commit | `{details.review.base_ref[:8]}` |" in markdown
    assert "- **2** files changed" in markdown
    assert "- **+4** additions" in markdown
    assert "- **-1** deletions" in markdown
    assert "- 📝 `file.txt` (+2/-1)" in markdown
    assert "- 🆕 `new.py` (+2/-0)" in markdown
    assert "## Review Comments" not in markdown
    assert "*Exported from revsnap on " in markdown


def test_line_comment_gets_snippet_from_stored_hunks(manager, fake_git):
    details = staged_review(manager, fake_git)
    manager.add_comment(
        details.id, "file.txt", "Name this better", line_number=2, line_type="added",
        suggestion="better line 2",
    )

    markdown = manager.export_markdown(details.id)

    assert "### file.txt" in markdown
    assert "#### Line 2" in markdown
    assert "```diff\n line 1\n-old line 2\n+new line 2\n+added line\n line 3\n```" in markdown
    assert "**Suggested change:**\n\n```\nbetter line 2\n```" in markdown
    assert "- **1** with suggestions" in markdown


def test_snippets_can_be_left_out(manager, fake_git):
    details = staged_review(manager, fake_git)
    manager.add_comment(details.id, "file.txt", "hm", line_number=2)

    markdown = manager.export_markdown(details.id, include_diff_snippets=False)

    assert "```diff" not in markdown
    assert "hm" in markdown


def test_file_level_comment_has_no_snippet(manager, fake_git):
    details = staged_review(manager, fake_git)
    manager.add_comment(details.id, "new.py", "Needs a test")

    markdown = manager.export_markdown(details.id)

    assert "#### File-level comment" in markdown
    assert "```diff" not in markdown


def test_comment_outside_hunks_has_no_snippet(manager, fake_git):
    details = staged_review(manager, fake_git)
    manager.add_comment(details.id, "file.txt", "far away", line_number=200)

    markdown = manager.export_markdown(details.id)

    assert "#### Line 200" in markdown
    assert "```diff" not in markdown


def test_commit_review_snippet_uses_regenerated_hunks(manager, fake_git):
    fake_git.commit_diffs = {"c1": MODIFIED_DIFF, "c2": NEW_FILE_DIFF}
    details = manager.create(SourceType.COMMITS, "c1,c2")
    manager.add_comment(details.id, "new.py", "greeting", line_number=1, line_type="added")

    markdown = manager.export_markdown(details.id)

    assert "Reviewing commits: c1, c2" in markdown
    assert '```diff\n+print("hello")\n+print("world")\n```' in markdown


def test_branch_review_names_the_branch(manager, fake_git):
    fake_git.branch_diffs = {"feature": NEW_FILE_DIFF}
    details = manager.create("branch", "feature")

    assert "Reviewing changes: HEAD...feature" in manager.export_markdown(details.id)


def test_resolved_comments_can_be_left_out(manager, fake_git):
    details = staged_review(manager, fake_git)
    done = manager.add_comment(details.id, "file.txt", "done already", line_number=1)
    manager.add_comment(details.id, "file.txt", "still open", line_number=3)
    manager.resolve_comment(done.id)

    everything = manager.export_markdown(details.id)
    open_only = manager.export_markdown(details.id, include_resolved=False)

    assert "#### Line 1 ✅" in everything
    assert "- **1** resolved" in everything
    assert "done already" not in open_only
    assert "still open" in open_only


def test_status_label(manager, fake_git):
    details = staged_review(manager, fake_git)
    manager.update(details.id, ReviewStatus.CHANGES_REQUESTED)

    assert "| Status | ⚠️ Changes Requested |" in manager.export_markdown(details.id)


def test_json_export(manager, fake_git):
    details = staged_review(manager, fake_git)
    manager.add_comment(details.id, "file.txt", "note", line_number=2)

    data = manager.export_json(details.id)

    assert data["id"] == details.id
    assert data["sourceType"] == "staged"
    assert data["summary"]["totalFiles"] == 2
    assert [f["filePath"] for f in data["files"]] == ["file.txt", "new.py"]
    assert data["comments"][0]["lineNumber"] == 2
    assert data["repository"]["name"] == "project"
    assert "snapshotData" not in data
    json.dumps(data)
