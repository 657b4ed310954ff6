"""history command: list previously submitted reviews."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from redline_cli.context import get_store, translate_errors
from redline_core.models import DECISION_LABELS, ReviewDecision

console = Console()

_DECISION_STYLE = {
    ReviewDecision.APPROVE: "green",
    ReviewDecision.COMMENT: "yellow",
    ReviewDecision.REQUEST_CHANGES: "red",
}


@click.command("history")
@click.option("--limit", default=20, show_default=True, help="Maximum number of reviews to show.")
@click.pass_context
@translate_errors
def history_cmd(ctx, limit: int):
    """Show submitted reviews, newest first."""
    store = get_store(ctx)
    entries = store.list_history()
    if not entries:
        console.print("[yellow]No reviews found. Run `redline review` to create one.[/yellow]")
        return

    table = Table(title="Review History", show_header=True, header_style="bold cyan")
    table.add_column("Review", style="bold")
    table.add_column("Decision", width=18)
    table.add_column("Comments", justify="right", width=10)
    table.add_column("Files", justify="right", width=8)
    table.add_column("Saved At", width=20)

    for entry in entries[:limit]:
        try:
            document = store.load(entry.path)
        except (OSError, ValueError) as e:
            # Hand-edited or truncated files still show up in the list.
            console.print(f"[yellow]Could not read {escape(entry.name)}: {escape(str(e))}[/yellow]")
            table.add_row(entry.name, "[dim]unreadable[/dim]", "", "", entry.modified_at.strftime("%Y-%m-%d %H:%M:%S"))
            continue
        style = _DECISION_STYLE[document.decision]
        table.add_row(
            entry.name.removesuffix(".toml"),
            f"[{style}]{DECISION_LABELS[document.decision]}[/{style}]",
            str(document.stats.total_comments),
            f"{document.stats.files_reviewed}/{document.stats.files_changed}",
            entry.modified_at.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)
