"""commits command: recent commits to pick a base reference from."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from redline_cli.context import get_repository, translate_errors

console = Console()


@click.command("commits")
@click.option("--limit", "-n", default=10, show_default=True, help="Number of commits to show.")
@click.pass_context
@translate_errors
def commits_cmd(ctx, limit: int):
    """List recent commits.

    Any hash shown can be passed as --base to `redline review`; append ~1 to
    include that commit itself in the review.
    """
    repository = get_repository(ctx)
    commits = repository.recent_commits(limit)
    if not commits:
        console.print("[yellow]No commits yet. A review will compare against the empty tree.[/yellow]")
        return

    title = f"Recent commits on {repository.current_branch()} ({repository.head_short_hash()})"
    table = Table(title=escape(title), show_header=True, header_style="bold cyan")
    table.add_column("Hash", style="bold", width=8)
    table.add_column("Message", max_width=50)
    table.add_column("Author", max_width=20)
    table.add_column("Date", width=19)
    for c in commits:
        table.add_row(c.short_hash, escape(c.message), escape(c.author), c.date[:19].replace("T", " "))
    console.print(table)
