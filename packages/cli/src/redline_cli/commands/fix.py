"""fix command: hand the latest review to the auto-fix agent."""

from __future__ import annotations

import click
from rich.console import Console

from redline_cli.context import get_repository, get_store, translate_errors
from redline_core.handoff import build_fix_prompt, build_handoff

console = Console()


@click.command("fix")
@click.option(
    "--print-prompt",
    "print_prompt",
    is_flag=True,
    help="Print the fix instruction instead of launching the agent.",
)
@click.argument("instructions", nargs=-1)
@click.pass_context
@translate_errors
def fix_cmd(ctx, print_prompt: bool, instructions: tuple[str, ...]):
    """Apply the latest review with the configured auto-fix agent.

    The agent command comes from auto_fix_command in .redline.yml or
    REDLINE_AUTO_FIX_COMMAND. It receives the review path through
    REDLINE_REVIEW (or a {review} placeholder) and runs in the background.

    With --print-prompt the instruction for the agent is written to stdout,
    for pasting into any assistant. INSTRUCTIONS are appended to it.
    """
    store = get_store(ctx)
    text = store.read_latest()
    if text is None:
        raise click.UsageError("No review submitted yet. Run `redline review` first.")

    if print_prompt:
        click.echo(build_fix_prompt(text, " ".join(instructions)), nl=False)
        return

    handoff = build_handoff(ctx.obj["config"], cwd=get_repository(ctx).root)
    handoff.notify(store.latest_path)
    console.print(f"[green]Auto-fix agent started for[/green] {store.latest_path}")
