"""review command: interactive review of local changes."""

from __future__ import annotations

import shlex

import click
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from redline_cli.commands.changes import print_failures, status_cell
from redline_cli.context import get_orchestrator, translate_errors
from redline_core.errors import ExportError, RedlineError
from redline_core.models import (
    DECISION_LABELS,
    SEVERITY_LABELS,
    SEVERITY_ORDER,
    CommentSeverity,
    ReviewComment,
    ReviewDecision,
    normalize_path,
)
from redline_core.orchestrator import SessionOrchestrator

console = Console()

SEVERITY_STYLE = {
    CommentSeverity.MUST_FIX: "red",
    CommentSeverity.SUGGESTION: "yellow",
    CommentSeverity.NITPICK: "blue",
    CommentSeverity.QUESTION: "magenta",
}

_SEVERITY_CHOICES = [s.value for s in SEVERITY_ORDER]
_DECISION_CHOICES = [d.value for d in ReviewDecision]

_HELP = """\
Commands:
  files                                    list changed files with their number
  diff <file>                              show the diff of a file
  comment <file> <line>[-<end>] [severity] add a comment (the text is prompted)
  edit <id>                                change a comment's text or severity
  delete <id>                              remove a comment
  resolve <id>                             toggle a comment's resolved flag
  reviewed <file>                          toggle a file's reviewed mark
  comments [<file>]                        list comments
  stats                                    show review statistics
  submit                                   export the review and finish
  cancel                                   discard the review and finish
  help                                     show this help

<file> is a path or the number shown by `files`; <id> may omit the "comment-" prefix.
Severities: must_fix, suggestion, nitpick, question.
"""


def severity_cell(severity: CommentSeverity) -> str:
    style = SEVERITY_STYLE[severity]
    return f"[{style}]{SEVERITY_LABELS[severity]}[/{style}]"


def location(comment: ReviewComment) -> str:
    if comment.end_line is not None:
        return f"{comment.file}:{comment.line}-{comment.end_line}"
    return f"{comment.file}:{comment.line}"


def parse_line_range(token: str) -> tuple[int, int | None]:
    """Parse ``12`` or ``12-15`` into (line, end_line)."""
    start, sep, end = token.partition("-")
    if not start.isdigit() or (sep and not end.isdigit()):
        raise ValueError(f"Invalid line {token!r}: use <line> or <line>-<end>.")
    return int(start), int(end) if sep else None


class ReviewLoop:
    """Reads reviewer actions from the prompt until the review is submitted or cancelled."""

    def __init__(
        self,
        orchestrator: SessionOrchestrator,
        default_severity: str = "suggestion",
        auto_fix: bool | None = None,
        auto_fix_configured: bool = False,
        assume_yes: bool = False,
    ):
        self._orchestrator = orchestrator
        self._default_severity = default_severity
        self._auto_fix = auto_fix
        self._auto_fix_configured = auto_fix_configured
        self._assume_yes = assume_yes
        self._handlers = {
            "files": self.files,
            "ls": self.files,
            "diff": self.diff,
            "comment": self.comment,
            "c": self.comment,
            "edit": self.edit,
            "delete": self.delete,
            "resolve": self.resolve,
            "reviewed": self.reviewed,
            "comments": self.comments,
            "stats": self.stats,
            "submit": self.submit,
            "cancel": self.cancel,
            "quit": self.cancel,
            "help": self.help,
            "?": self.help,
        }

    @property
    def session(self):
        return self._orchestrator.current_session

    def run(self) -> None:
        while self._orchestrator.is_active:
            line = click.prompt("redline", default="", show_default=False, prompt_suffix="> ")
            try:
                argv = shlex.split(line)
            except ValueError as e:
                console.print(f"[red]{escape(str(e))}[/red]")
                continue
            if not argv:
                continue

            handler = self._handlers.get(argv[0].lower())
            if handler is None:
                console.print(f"[red]Unknown command {escape(argv[0])!r}.[/red] Type [bold]help[/bold] for a list.")
                continue
            try:
                handler(argv[1:])
            except (ValueError, RedlineError) as e:
                console.print(f"[red]{escape(str(e))}[/red]")

    # ------------------------------------------------------------------ #
    # Argument helpers                                                    #
    # ------------------------------------------------------------------ #

    def _file_arg(self, args: list[str], usage: str) -> str:
        if not args:
            raise ValueError(f"Usage: {usage}")
        token = args[0]
        path = normalize_path(token)
        if token.isdigit() and not self.session.has_file(path):
            files = self.session.files()
            index = int(token)
            if not 1 <= index <= len(files):
                raise ValueError(f"No file #{index}. Type `files` to list them.")
            return files[index - 1].path
        if not self.session.has_file(path):
            raise ValueError(f"{path} is not part of this review.")
        return path

    def _comment_arg(self, args: list[str], usage: str) -> str:
        if not args:
            raise ValueError(f"Usage: {usage}")
        token = args[0]
        comment_id = f"comment-{token}" if token.isdigit() else token
        if self.session.get_comment(comment_id) is None:
            raise ValueError(f"No comment {comment_id}.")
        return comment_id

    # ------------------------------------------------------------------ #
    # Commands                                                            #
    # ------------------------------------------------------------------ #

    def help(self, args: list[str]) -> None:
        click.echo(_HELP)

    def files(self, args: list[str]) -> None:
        session = self.session
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("#", justify="right")
        table.add_column("", width=2)
        table.add_column("File")
        table.add_column("+", justify="right", style="green")
        table.add_column("-", justify="right", style="red")
        table.add_column("Comments", justify="right")
        table.add_column("Reviewed")

        for index, f in enumerate(session.files(), start=1):
            table.add_row(
                str(index),
                status_cell(f.status),
                escape(f.path),
                str(f.additions),
                str(f.deletions),
                str(len(session.comments_for_file(f.path))),
                "[green]yes[/green]" if session.is_file_reviewed(f.path) else "",
            )
        console.print(table)

    def diff(self, args: list[str]) -> None:
        path = self._file_arg(args, "diff <file>")
        text = self._orchestrator.file_diff(path)
        if not text:
            console.print("[dim]No textual changes (binary or mode-only change).[/dim]")
            return
        console.print(Syntax(text, "diff", word_wrap=True))

    def comment(self, args: list[str]) -> None:
        usage = "comment <file> <line>[-<end>] [severity]"
        path = self._file_arg(args, usage)
        if len(args) < 2:
            raise ValueError(f"Usage: {usage}")
        line, end_line = parse_line_range(args[1])
        severity = args[2].lower() if len(args) > 2 else self._default_severity
        if severity not in _SEVERITY_CHOICES:
            raise ValueError(f"Unknown severity {severity!r}. Choose one of: {', '.join(_SEVERITY_CHOICES)}.")

        body = click.prompt("Comment", default="", show_default=False).strip()
        if not body:
            console.print("[yellow]Empty comment discarded.[/yellow]")
            return

        comment = self._orchestrator.add_comment(path, line, body, severity, end_line=end_line)
        if comment is None:
            raise ValueError(f"{path} is not part of this review.")
        console.print(f"Added [bold]{comment.id}[/bold] ({severity_cell(comment.severity)}) on {escape(location(comment))}")

    def edit(self, args: list[str]) -> None:
        comment_id = self._comment_arg(args, "edit <id>")
        comment = self.session.get_comment(comment_id)
        body = click.prompt("Comment", default=comment.body).strip()
        severity = click.prompt("Severity", type=click.Choice(_SEVERITY_CHOICES), default=comment.severity.value)
        if not body:
            raise ValueError("A comment cannot be empty; use `delete` to remove it.")
        self._orchestrator.update_comment(comment_id, body, severity)
        console.print(f"Updated [bold]{comment_id}[/bold]")

    def delete(self, args: list[str]) -> None:
        comment_id = self._comment_arg(args, "delete <id>")
        self._orchestrator.remove_comment(comment_id)
        console.print(f"Deleted [bold]{comment_id}[/bold]")

    def resolve(self, args: list[str]) -> None:
        comment_id = self._comment_arg(args, "resolve <id>")
        resolved = self._orchestrator.toggle_resolved(comment_id)
        console.print(f"[bold]{comment_id}[/bold] {'resolved' if resolved else 'reopened'}")

    def reviewed(self, args: list[str]) -> None:
        path = self._file_arg(args, "reviewed <file>")
        reviewed = self._orchestrator.toggle_file_reviewed(path)
        state = "[green]reviewed[/green]" if reviewed else "not reviewed"
        console.print(f"{escape(path)} marked {state}")

    def comments(self, args: list[str]) -> None:
        if args:
            comments = self.session.comments_for_file(self._file_arg(args, "comments [<file>]"))
        else:
            comments = self.session.comments()
        if not comments:
            console.print("[yellow]No comments yet.[/yellow]")
            return

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("ID", style="bold")
        table.add_column("Location")
        table.add_column("Severity")
        table.add_column("Comment")
        table.add_column("Resolved")
        for c in comments:
            table.add_row(
                c.id,
                escape(location(c)),
                severity_cell(c.severity),
                escape(c.body),
                "[green]yes[/green]" if c.resolved else "",
            )
        console.print(table)

    def stats(self, args: list[str]) -> None:
        stats = self._orchestrator.stats()
        console.print(f"  Files reviewed: {stats.files_reviewed}/{stats.files_changed}")
        console.print(f"  Comments:       {stats.total_comments}")
        console.print(
            f"  [red]Must Fix {stats.must_fix}[/red]  [yellow]Suggestion {stats.suggestions}[/yellow]  "
            f"[blue]Nitpick {stats.nitpicks}[/blue]  [magenta]Question {stats.questions}[/magenta]"
        )

    def submit(self, args: list[str]) -> None:
        stats = self._orchestrator.stats()
        if stats.files_reviewed < stats.files_changed:
            pending = stats.files_changed - stats.files_reviewed
            console.print(f"[yellow]{pending} of {stats.files_changed} file(s) not marked as reviewed.[/yellow]")

        if stats.must_fix:
            suggested = ReviewDecision.REQUEST_CHANGES
        elif stats.total_comments:
            suggested = ReviewDecision.COMMENT
        else:
            suggested = ReviewDecision.APPROVE
        decision = ReviewDecision(
            click.prompt("Decision", type=click.Choice(_DECISION_CHOICES), default=suggested.value)
        )
        summary = click.prompt("Summary", default="", show_default=False).strip()

        auto_fix = self._auto_fix
        if auto_fix is None:
            if self._assume_yes:
                auto_fix = self._auto_fix_configured
            else:
                auto_fix = click.confirm("Hand the review to the auto-fix agent?", default=self._auto_fix_configured)

        try:
            result = self._orchestrator.submit(decision, summary, auto_fix=auto_fix)
        except ExportError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            console.print("[yellow]The review is still open. Fix the problem and submit again.[/yellow]")
            return

        console.print(f"\n[bold green]Review submitted:[/bold green] {DECISION_LABELS[decision]}")
        console.print(f"  Saved to: {escape(str(result.path))}")
        console.print(f"  Latest:   {escape(str(result.latest_path))}")
        if result.warning:
            console.print(f"[yellow]{escape(result.warning)}[/yellow]")

    def cancel(self, args: list[str]) -> None:
        count = len(self.session.comments())
        if count and not self._assume_yes:
            if not click.confirm(f"Discard the review and its {count} comment(s)?", default=False):
                return
        self._orchestrator.cancel()
        console.print("[yellow]Review cancelled.[/yellow]")


@click.command("review")
@click.option("--base", "base_ref", default=None, help="Base reference. Overrides base_ref from config.")
@click.option("--head", "head_ref", default=None, help="Head reference. Overrides head_ref from config.")
@click.option(
    "--auto-fix/--no-auto-fix",
    "auto_fix",
    default=None,
    help="Hand the submitted review to the auto-fix agent. Asked on submit when omitted.",
)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts.")
@click.pass_context
@translate_errors
def review_cmd(ctx, base_ref: str | None, head_ref: str | None, auto_fix: bool | None, yes: bool):
    """Review local changes interactively.

    Collects every file that differs from the base reference (committed,
    staged, unstaged and untracked), then reads review actions from the
    prompt. On submit the review is written to the output directory as TOML
    and copied to latest.toml for fix agents.
    """
    config = ctx.obj["config"]
    orchestrator = get_orchestrator(ctx)

    session = orchestrator.start(base_ref or config["base_ref"], head_ref or config["head_ref"])
    print_failures(orchestrator.last_change_set)
    if session is None:
        console.print("[yellow]No changes found. Nothing to review.[/yellow]")
        return

    console.print(
        f"\n[bold cyan]Reviewing {len(session.files())} file(s)[/bold cyan] "
        f"[dim]{escape(session.base_ref[:12])}..{escape(session.head_ref)}[/dim]"
    )
    loop = ReviewLoop(
        orchestrator,
        default_severity=config["default_severity"],
        auto_fix=auto_fix,
        auto_fix_configured=bool(config.get("auto_fix_command")),
        assume_yes=yes,
    )
    loop.files([])
    console.print("Type [bold]help[/bold] for commands.")
    loop.run()
