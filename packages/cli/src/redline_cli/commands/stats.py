"""stats command: aggregate patterns across review history."""

from __future__ import annotations

from collections import Counter

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from redline_cli.commands.review import SEVERITY_STYLE
from redline_cli.context import get_store, translate_errors
from redline_core.models import DECISION_LABELS, SEVERITY_LABELS, SEVERITY_ORDER, CommentSeverity, ReviewDecision

console = Console()


@click.command("stats")
@click.option("--top", default=10, show_default=True, help="Number of top entries to show per category.")
@click.pass_context
@translate_errors
def stats_cmd(ctx, top: int):
    """Show aggregated statistics over all submitted reviews.

    Reports the severity distribution, decisions, and the most frequently
    flagged files. Useful for spotting the parts of the codebase that keep
    attracting review comments.
    """
    store = get_store(ctx)
    documents = []
    for entry in store.list_history():
        try:
            documents.append(store.load(entry.path))
        except (OSError, ValueError) as e:
            console.print(f"[yellow]Skipping {escape(entry.name)}: {escape(str(e))}[/yellow]")

    if not documents:
        console.print("[yellow]No reviews found. Run `redline review` to create one.[/yellow]")
        return

    total_reviews = len(documents)
    severity_counter: Counter[CommentSeverity] = Counter()
    decision_counter: Counter[ReviewDecision] = Counter()
    file_counter: Counter[str] = Counter()
    unresolved = 0

    for document in documents:
        decision_counter[document.decision] += 1
        for comment in document.comments:
            severity_counter[comment.severity] += 1
            file_counter[comment.file] += 1
            if not comment.resolved:
                unresolved += 1
    total_comments = sum(severity_counter.values())

    # --- Summary ---
    console.print("\n[bold]Review stats[/bold]")
    console.print(f"  Total reviews:  {total_reviews}")
    console.print(f"  Total comments: {total_comments}")
    console.print(f"  Unresolved:     {unresolved}")
    console.print(f"  Avg per review: {total_comments / total_reviews:.1f}")

    # --- Decisions ---
    decision_table = Table(title="Decisions", show_header=True)
    decision_table.add_column("Decision", style="bold")
    decision_table.add_column("Count", justify="right")
    for decision in ReviewDecision:
        decision_table.add_row(DECISION_LABELS[decision], str(decision_counter.get(decision, 0)))
    console.print(decision_table)

    # --- Severity breakdown ---
    if total_comments:
        sev_table = Table(title="Severity Breakdown", show_header=True)
        sev_table.add_column("Severity", style="bold")
        sev_table.add_column("Count", justify="right")
        sev_table.add_column("% of total", justify="right")
        for sev in SEVERITY_ORDER:
            count = severity_counter.get(sev, 0)
            style = SEVERITY_STYLE[sev]
            sev_table.add_row(f"[{style}]{SEVERITY_LABELS[sev]}[/{style}]", str(count), f"{count / total_comments * 100:.1f}%")
        console.print(sev_table)

    # --- Most flagged files ---
    if file_counter:
        file_table = Table(title=f"Top {top} Most Flagged Files", show_header=True)
        file_table.add_column("File")
        file_table.add_column("Comments", justify="right")
        for file_path, count in file_counter.most_common(top):
            file_table.add_row(file_path, str(count))
        console.print(file_table)
