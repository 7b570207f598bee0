"""Command-line interface for revsnap."""

import functools
import json
import logging
import subprocess
from pathlib import Path

import click

from revsnap.config import get_settings
from revsnap.core.git import GitService
from revsnap.core.snapshot import ReviewSnapshotManager
from revsnap.db.database import create_session_factory
from revsnap.errors import ReviewError
from revsnap.models.diff import LineType
from revsnap.models.export import ExportFormat
from revsnap.models.review import ReviewStatus, SourceType


def reports_errors(f):
    """Turn review and git failures into click errors."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ReviewError as e:
            raise click.ClickException(f"{e.message} ({e.code.value})")
        except subprocess.CalledProcessError as e:
            raise click.ClickException(f"git failed: {(e.stderr or '').strip() or e}")

    return wrapper


def echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def review_id_for(manager: ReviewSnapshotManager, review_id: str) -> str:
    """Resolve the ``last`` alias to the newest review."""
    if review_id != "last":
        return review_id
    latest = manager.get_latest_id()
    if latest is None:
        raise click.ClickException("No reviews found")
    return latest


@click.group()
@click.version_option(package_name="revsnap")
@click.option(
    "--repo",
    "-r",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Repository path (default: current directory)",
)
@click.option(
    "--db",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Review database (default: <repo>/.revsnap/reviews.db)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output")
@click.pass_context
def cli(ctx: click.Context, repo: Path | None, db: Path | None, verbose: bool):
    """revsnap - review your own changes as stored snapshots.

    Examples:

        revsnap create --staged             # Staged changes (default)
        revsnap create --branch feature     # What feature adds to HEAD
        revsnap create --commits a1b2,c3d4  # Specific commits
        revsnap export <id>                 # Markdown report
    """
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    repo_path = (repo or settings.repository_path).resolve()
    db_path = db or settings.resolve_db_path(repo_path)
    ctx.obj = ReviewSnapshotManager(
        git=GitService(repo_path),
        session_factory=create_session_factory(db_path),
    )


@cli.command()
@click.option("--staged", is_flag=True, help="Review staged changes")
@click.option("--branch", "-b", help="Review what BRANCH adds compared to HEAD")
@click.option("--commits", "-c", help="Review comma-separated commit SHAs")
@click.pass_obj
@reports_errors
def create(manager: ReviewSnapshotManager, staged: bool, branch: str | None, commits: str | None):
    """Create a review."""
    if commits:
        source_type, source_ref = SourceType.COMMITS, commits
    elif branch:
        source_type, source_ref = SourceType.BRANCH, branch
    else:
        source_type, source_ref = SourceType.STAGED, None

    details = manager.create(source_type, source_ref)
    summary = details.summary
    click.echo(f"Created review {details.id}")
    click.echo(
        f"  {summary.total_files} files, "
        f"+{summary.total_additions}/-{summary.total_deletions}"
    )


@cli.command(name="list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ReviewStatus]),
    default=None,
)
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--page-size", type=int, default=None)
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_obj
@reports_errors
def list_command(
    manager: ReviewSnapshotManager,
    status: str | None,
    page: int,
    page_size: int | None,
    as_json: bool,
):
    """List reviews, newest first."""
    result = manager.list_reviews(
        status=status,
        page=page,
        page_size=page_size or get_settings().page_size,
    )
    if as_json:
        echo_json(result.to_dict())
        return
    if not result.data:
        click.echo("No reviews.")
        return
    for item in result.data:
        review = item.review
        click.echo(
            f"{review.id}  {review.status.value:<17}  {review.source_type.value:<7}  "
            f"{item.summary.total_files} files  {review.created_at:%Y-%m-%d %H:%M}"
        )


@cli.command()
@click.argument("review_id")
@click.pass_obj
@reports_errors
def show(manager: ReviewSnapshotManager, review_id: str):
    """Show a review (ID or "last") with its files and summary."""
    review_id = review_id_for(manager, review_id)
    details = manager.get_by_id(review_id)
    if details is None:
        raise click.ClickException(f"Review not found: {review_id}")
    echo_json(details.to_dict())


@cli.command()
@click.argument("review_id")
@click.pass_obj
@reports_errors
def files(manager: ReviewSnapshotManager, review_id: str):
    """List the changed files of a review."""
    review_id = review_id_for(manager, review_id)
    for review_file in manager.get_files(review_id):
        label = review_file.file_path
        if review_file.old_path:
            label = f"{review_file.old_path} -> {label}"
        click.echo(
            f"{review_file.status.value:<8}  +{review_file.additions:<4} "
            f"-{review_file.deletions:<4}  {label}"
        )


@cli.command()
@click.argument("review_id")
@click.argument("file_path")
@click.pass_obj
@reports_errors
def hunks(manager: ReviewSnapshotManager, review_id: str, file_path: str):
    """Print the hunks of one file of a review."""
    review_id = review_id_for(manager, review_id)
    result = manager.get_file_hunks(review_id, file_path)
    if not result:
        click.echo("Hunks unavailable.", err=True)
    echo_json([hunk.to_dict() for hunk in result])


@cli.command()
@click.argument("review_id")
@click.argument("status", type=click.Choice([s.value for s in ReviewStatus]))
@click.pass_obj
@reports_errors
def status(manager: ReviewSnapshotManager, review_id: str, status: str):
    """Set the status of a review."""
    details = manager.update(review_id_for(manager, review_id), status)
    click.echo(f"Review {details.id} is now {details.review.status.value}")


@cli.command()
@click.argument("review_id")
@click.argument("file_path")
@click.argument("content")
@click.option("--line", "-l", type=int, default=None, help="Line number (omit for file-level)")
@click.option(
    "--type",
    "line_type",
    type=click.Choice([t.value for t in LineType]),
    default=None,
    help="Kind of line commented on (removed lines use old numbering)",
)
@click.option("--suggestion", default=None, help="Suggested replacement")
@click.pass_obj
@reports_errors
def comment(
    manager: ReviewSnapshotManager,
    review_id: str,
    file_path: str,
    content: str,
    line: int | None,
    line_type: str | None,
    suggestion: str | None,
):
    """Comment on a file or line of a review."""
    review_id = review_id_for(manager, review_id)
    created = manager.add_comment(
        review_id,
        file_path,
        content,
        line_number=line,
        line_type=line_type,
        suggestion=suggestion,
    )
    click.echo(f"Added comment {created.id} on {created.location}")


@cli.command()
@click.argument("review_id")
@click.option(
    "--format",
    "export_format",
    type=click.Choice([f.value for f in ExportFormat]),
    default=ExportFormat.MARKDOWN.value,
    show_default=True,
)
@click.option("--no-resolved", is_flag=True, help="Leave out resolved comments")
@click.option("--no-snippets", is_flag=True, help="Leave out diff snippets")
@click.pass_obj
@reports_errors
def export(
    manager: ReviewSnapshotManager,
    review_id: str,
    export_format: str,
    no_resolved: bool,
    no_snippets: bool,
):
    """Export a review (ID or "last") with its comments."""
    review_id = review_id_for(manager, review_id)
    if ExportFormat(export_format) == ExportFormat.JSON:
        data = manager.export_json(review_id)
        if data is None:
            raise click.ClickException(f"Review not found: {review_id}")
        echo_json(data)
        return

    markdown = manager.export_markdown(
        review_id,
        include_resolved=not no_resolved,
        include_diff_snippets=not no_snippets,
    )
    if markdown is None:
        raise click.ClickException(f"Review not found: {review_id}")
    click.echo(markdown)


@cli.command()
@click.argument("review_id")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_obj
@reports_errors
def resolve(manager: ReviewSnapshotManager, review_id: str, as_json: bool):
    """Approve a review (ID or "last") and resolve all of its comments."""
    result = manager.resolve(review_id_for(manager, review_id))
    if as_json:
        echo_json(result.to_dict())
        return
    click.echo(f"Review {result.review_id} resolved:")
    click.echo(
        f"  Status: {result.previous_status.value} -> {result.new_status.value}"
    )
    click.echo(f"  Comments resolved: {result.comments_resolved}")
    if result.comments_already_resolved > 0:
        click.echo(f"  Comments already resolved: {result.comments_already_resolved}")


@cli.command()
@click.option("--all-repos", is_flag=True, help="Count reviews of every repository")
@click.pass_obj
@reports_errors
def stats(manager: ReviewSnapshotManager, all_repos: bool):
    """Count reviews per status."""
    repository_path = None if all_repos else manager.git.get_repository_info().path
    echo_json(manager.get_stats(repository_path).to_dict())


@cli.command()
@click.argument("review_id")
@click.pass_obj
@reports_errors
def delete(manager: ReviewSnapshotManager, review_id: str):
    """Delete a review and its comments."""
    manager.delete(review_id)
    click.echo(f"Deleted review {review_id}")


if __name__ == "__main__":
    cli()
