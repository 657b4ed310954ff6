"""Lazily built collaborators shared by all subcommands.

The group callback only loads configuration. Repository, store and
orchestrator are created on first use and cached on ``ctx.obj`` so that
commands which never touch git (``init``) work outside a repository, and so
tests can inject ready-made objects through ``CliRunner.invoke(obj=...)``.

This wiring lives in the CLI so neither redline_core nor redline_store know
about the config file format.
"""

from __future__ import annotations

import functools
from pathlib import Path

import click

from redline_core.errors import RedlineError, SessionStateError
from redline_core.git.repository import GitRepository
from redline_core.handoff import build_handoff
from redline_core.orchestrator import SessionOrchestrator
from redline_store.file import FileStore


def translate_errors(func):
    """Turn RedlineError into click errors so users see a message, not a traceback."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SessionStateError as e:
            raise click.UsageError(str(e)) from e
        except RedlineError as e:
            raise click.ClickException(str(e)) from e

    return wrapper


def build_store(config: dict, root: str | Path) -> FileStore:
    return FileStore(
        root,
        output_dir=config.get("output_dir", ".redline"),
        add_to_gitignore=bool(config.get("add_to_gitignore", True)),
    )


def get_repository(ctx: click.Context) -> GitRepository:
    obj = ctx.ensure_object(dict)
    if "repository" not in obj:
        obj["repository"] = GitRepository(obj.get("repo_dir", "."))
    return obj["repository"]


def get_store(ctx: click.Context) -> FileStore:
    obj = ctx.ensure_object(dict)
    if "store" not in obj:
        store = build_store(obj["config"], get_repository(ctx).root)
        ctx.call_on_close(store.close)
        obj["store"] = store
    return obj["store"]


def get_orchestrator(ctx: click.Context) -> SessionOrchestrator:
    obj = ctx.ensure_object(dict)
    if "orchestrator" not in obj:
        repository = get_repository(ctx)
        obj["orchestrator"] = SessionOrchestrator(
            repository,
            get_store(ctx),
            handoff=build_handoff(obj["config"], cwd=repository.root),
        )
    return obj["orchestrator"]
