"""changes command: show what a review would cover."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from redline_cli.context import get_orchestrator, translate_errors
from redline_core.git.changes import ChangeSet
from redline_core.models import FileStatus

console = Console()

STATUS_STYLE = {
    FileStatus.ADDED: ("A", "green"),
    FileStatus.MODIFIED: ("M", "yellow"),
    FileStatus.DELETED: ("D", "red"),
    FileStatus.RENAMED: ("R", "cyan"),
}


def print_failures(change_set: ChangeSet | None) -> None:
    if change_set is None:
        return
    for failure in change_set.failures:
        console.print(f"[yellow]Skipped {failure.name} changes: {failure.error}[/yellow]")


def status_cell(status: FileStatus) -> str:
    letter, style = STATUS_STYLE[status]
    return f"[{style}]{letter}[/{style}]"


@click.command("changes")
@click.option("--base", "base_ref", default=None, help="Base reference. Overrides base_ref from config.")
@click.option("--head", "head_ref", default=None, help="Head reference. Overrides head_ref from config.")
@click.pass_context
@translate_errors
def changes_cmd(ctx, base_ref: str | None, head_ref: str | None):
    """List files that differ from the base reference.

    Includes committed, staged, unstaged and untracked changes, exactly as a
    review started with the same references would.
    """
    config = ctx.obj["config"]
    orchestrator = get_orchestrator(ctx)
    change_set = orchestrator.resolve_changes(base_ref or config["base_ref"], head_ref or config["head_ref"])
    print_failures(change_set)

    if not change_set.files:
        console.print("[yellow]No changes found.[/yellow]")
        return

    table = Table(title="Changed Files", show_header=True, header_style="bold cyan")
    table.add_column("", width=2)
    table.add_column("File")
    table.add_column("+", justify="right", style="green")
    table.add_column("-", justify="right", style="red")

    for f in change_set.files:
        name = f"{f.old_path} -> {f.path}" if f.old_path else f.path
        table.add_row(status_cell(f.status), name, str(f.additions), str(f.deletions))

    console.print(table)
    additions = sum(f.additions for f in change_set.files)
    deletions = sum(f.deletions for f in change_set.files)
    console.print(f"{len(change_set.files)} file(s) changed, +{additions} -{deletions}")
