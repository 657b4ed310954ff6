"""CLI entry point for redline.

Commands:
  changes  show what a review would cover
  commits  recent commits to pick a base reference from
  review   interactive review session, exported as TOML on submit
  history  list previously submitted reviews
  stats    aggregate comment patterns across review history
  latest   print the most recent review (what fix agents read)
  fix      hand the latest review to the auto-fix agent
  init     interactive setup wizard
"""

from __future__ import annotations

import importlib.metadata
from pathlib import Path

import click
import yaml

from redline_cli.commands.changes import changes_cmd
from redline_cli.commands.commits import commits_cmd
from redline_cli.commands.fix import fix_cmd
from redline_cli.commands.history import history_cmd
from redline_cli.commands.init import init_cmd
from redline_cli.commands.latest import latest_cmd
from redline_cli.commands.review import review_cmd
from redline_cli.commands.stats import stats_cmd
from redline_core.diagnostics import dispose_logging, init_logging


@click.group()
@click.version_option(
    version=importlib.metadata.version("redline"),
    prog_name="redline",
)
@click.option(
    "--config",
    "config_path",
    default=".redline.yml",
    show_default=True,
    help="Path to the configuration file, relative to the repository directory.",
    envvar="REDLINE_CONFIG",
)
@click.option(
    "--repo",
    "-C",
    "repo_dir",
    default=".",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Repository working directory.",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, repo_dir: str, verbose: bool):
    """Review your local changes like a pull request, then hand them to a fix agent."""
    from redline_core.config import load_config

    ctx.ensure_object(dict)

    handler = init_logging(verbose)
    ctx.call_on_close(lambda: dispose_logging(handler))

    ctx.obj.setdefault("repo_dir", repo_dir)
    if "config" not in ctx.obj:
        path = Path(config_path)
        if not path.is_absolute():
            path = Path(repo_dir) / path
        try:
            ctx.obj["config"] = load_config(str(path))
        except (ValueError, yaml.YAMLError) as e:
            raise click.UsageError(f"Invalid configuration in {path}: {e}") from e


main.add_command(changes_cmd)
main.add_command(commits_cmd)
main.add_command(review_cmd)
main.add_command(history_cmd)
main.add_command(stats_cmd)
main.add_command(latest_cmd)
main.add_command(fix_cmd)
main.add_command(init_cmd)
