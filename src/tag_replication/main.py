"""CLI entrypoint for tag-replication."""

import logging
from collections.abc import Callable
from pathlib import Path

import rich_click as click

from tag_replication import __version__
from tag_replication.controllers import (
    AddTaskCommand,
    ListTasksCommand,
    MutateTaskCommand,
    ReconcileCommand,
    TaskStoreCliController,
)
from tag_replication.errors import TaskStoreError

click.rich_click.USE_MARKDOWN = True
CONTROLLER = TaskStoreCliController()

db_path_option = click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite DB path.",
)
keep_all_option = click.option(
    "--keep-all",
    is_flag=True,
    default=False,
    help="Skip remote validation on open instead of using TAG_REPLICATION_REMOTES.",
)
identity_options = [
    click.option("--tag", required=True, help="Tag name."),
    click.option("--destination", required=True, help="Destination remote."),
]


def _with_identity(func: Callable) -> Callable:
    for option in reversed(identity_options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="tag-replication")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="warning",
    show_default=True,
    help="Logging verbosity.",
)
def tag_replication(log_level: str) -> None:
    """Replication task store CLI."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@tag_replication.command("add")
@db_path_option
@_with_identity
@click.option("--digest", default="", help="Digest the tag resolves to.")
@click.option(
    "--dependency",
    "dependencies",
    multiple=True,
    help="Blob digest the tag depends on. Can be repeated.",
)
@click.option(
    "--delay-seconds",
    type=click.IntRange(min=0),
    default=None,
    help="Delay before the task is ready; defaults to TAG_REPLICATION_DEFAULT_DELAY_SECONDS.",
)
@click.option("--failed", is_flag=True, default=False, help="Store the task as failed.")
@keep_all_option
def add_task(  # noqa: PLR0913
    db_path: Path | None,
    tag: str,
    destination: str,
    digest: str,
    dependencies: tuple[str, ...],
    delay_seconds: int | None,
    failed: bool,
    keep_all: bool,
) -> None:
    """Add a pending (or failed) replication task."""

    _emit(
        lambda: CONTROLLER.add_task(
            AddTaskCommand(
                db_path=db_path,
                tag=tag,
                destination=destination,
                digest=digest,
                dependencies=dependencies,
                delay_seconds=delay_seconds,
                failed=failed,
                keep_all=keep_all,
            ),
        ),
    )


@tag_replication.command("tasks")
@db_path_option
@click.option(
    "--status",
    type=click.Choice(["pending", "failed"], case_sensitive=False),
    default=None,
    help="Optional status filter.",
)
@keep_all_option
def list_tasks(db_path: Path | None, status: str | None, keep_all: bool) -> None:
    """List stored tasks in insertion order."""

    _emit(
        lambda: CONTROLLER.list_tasks(
            ListTasksCommand(
                db_path=db_path,
                status=status.lower() if status else None,
                keep_all=keep_all,
            ),
        ),
    )


@tag_replication.command("mark-failed")
@db_path_option
@_with_identity
@keep_all_option
def mark_failed(db_path: Path | None, tag: str, destination: str, keep_all: bool) -> None:
    """Move a pending task to failed."""

    _emit(lambda: CONTROLLER.mark_failed(_mutation(db_path, tag, destination, keep_all)))


@tag_replication.command("mark-pending")
@db_path_option
@_with_identity
@keep_all_option
def mark_pending(db_path: Path | None, tag: str, destination: str, keep_all: bool) -> None:
    """Move a failed task back to pending."""

    _emit(lambda: CONTROLLER.mark_pending(_mutation(db_path, tag, destination, keep_all)))


@tag_replication.command("remove")
@db_path_option
@_with_identity
@keep_all_option
def remove_task(db_path: Path | None, tag: str, destination: str, keep_all: bool) -> None:
    """Delete a task from whichever state holds it."""

    _emit(lambda: CONTROLLER.remove_task(_mutation(db_path, tag, destination, keep_all)))


@tag_replication.command("reconcile")
@db_path_option
@keep_all_option
def reconcile(db_path: Path | None, keep_all: bool) -> None:
    """Open the store, purging tasks for unknown remotes, and report the sweep."""

    _emit(lambda: CONTROLLER.reconcile(ReconcileCommand(db_path=db_path, keep_all=keep_all)))


def _mutation(
    db_path: Path | None,
    tag: str,
    destination: str,
    keep_all: bool,
) -> MutateTaskCommand:
    return MutateTaskCommand(
        db_path=db_path,
        tag=tag,
        destination=destination,
        keep_all=keep_all,
    )


def _emit(run: Callable[[], list[str]]) -> None:
    try:
        lines = run()
    except (TaskStoreError, ValueError) as error:
        raise click.ClickException(str(error)) from error
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    tag_replication()
