"""init command: interactive setup wizard.

Writes .redline.yml once so every later `redline review` runs with the
team's base reference, default severity and fix agent. Existing keys in the
file are preserved.
"""

from __future__ import annotations

import shutil
from pathlib import Path

import click
import yaml
from rich.console import Console

from redline_core.config import DEFAULT_CONFIG
from redline_core.models import SEVERITY_ORDER

console = Console()

CONFIG_NAME = ".redline.yml"

# Agents detected on PATH, offered as the default auto_fix_command.
_KNOWN_AGENTS = {
    "claude": 'claude -p "Apply the code review in {review}"',
    "aider": "aider --message-file {review}",
}


@click.command("init")
@click.pass_context
def init_cmd(ctx):
    """Set up redline for this repository.

    Creates .redline.yml with the review defaults and, optionally, the
    command that hands submitted reviews to an auto-fix agent.
    """
    repo_dir = Path(ctx.obj.get("repo_dir", ".")) if ctx.obj else Path(".")
    console.print("\n[bold cyan]redline init[/bold cyan] setup wizard\n")

    config: dict = {}

    # --- Review defaults ---
    config["base_ref"] = click.prompt("Default base reference", default=DEFAULT_CONFIG["base_ref"])
    config["default_severity"] = click.prompt(
        "Default comment severity",
        type=click.Choice([s.value for s in SEVERITY_ORDER]),
        default=DEFAULT_CONFIG["default_severity"],
    )

    # --- Output ---
    config["output_dir"] = click.prompt("Review output directory", default=DEFAULT_CONFIG["output_dir"])
    config["add_to_gitignore"] = click.confirm(f"Add {config['output_dir']}/ to .gitignore?", default=True)

    # --- Auto-fix agent ---
    console.print(
        "\nAuto-fix agent: a command launched after submit with the review path in "
        "[bold]REDLINE_REVIEW[/bold] ({review} in the command is replaced too)."
    )
    suggested = _detect_agent_command()
    if suggested:
        console.print(f"[dim]Detected: {suggested}[/dim]")
    command = click.prompt("Auto-fix command (empty for none)", default=suggested or "", show_default=bool(suggested))
    config["auto_fix_command"] = command.strip() or None

    # --- Write .redline.yml ---
    path = repo_dir / CONFIG_NAME
    _write_config(path, config)
    console.print(f"[green]Created {CONFIG_NAME}[/green]")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Start a review with: [bold]redline review[/bold]")


def _detect_agent_command() -> str | None:
    """Suggest an auto-fix command for the first known agent found on PATH."""
    for binary, command in _KNOWN_AGENTS.items():
        if shutil.which(binary):
            return command
    return None


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
