"""latest command: print the most recent review document."""

from __future__ import annotations

import click

from redline_cli.context import get_store, translate_errors
from redline_core.handoff import build_summary_prompt


@click.command("latest")
@click.option("--path", "path_only", is_flag=True, help="Print the location of latest.toml instead of its content.")
@click.option(
    "--summary-prompt",
    "summary_prompt",
    is_flag=True,
    help="Wrap the review in a prompt asking an assistant to summarise it.",
)
@click.argument("question", nargs=-1)
@click.pass_context
@translate_errors
def latest_cmd(ctx, path_only: bool, summary_prompt: bool, question: tuple[str, ...]):
    """Print the most recent review.

    The output is plain text so it can be piped into other tools. QUESTION is
    appended to the summary prompt when --summary-prompt is given.
    """
    store = get_store(ctx)
    if path_only:
        click.echo(str(store.latest_path))
        return

    text = store.read_latest()
    if text is None:
        raise click.UsageError("No review submitted yet. Run `redline review` first.")
    if summary_prompt:
        click.echo(build_summary_prompt(text, " ".join(question)), nl=False)
    else:
        click.echo(text, nl=False)
