"""Review lifecycle orchestration.

SessionOrchestrator is the use-case layer the front-end talks to. It owns at
most one ReviewSession and moves between two states:

  Idle: no session. start() may move to Active.
  Active: a session exists and accepts mutations. submit() and cancel()
    return to Idle.

Preconditions are enforced here, not in the UI: mutating or submitting while
Idle raises NoActiveSessionError; starting while Active raises
SessionActiveError unless the caller explicitly asks to discard the running
session. Nothing is partially applied when a precondition fails.

Submission is export first, hand-off second. Once the document is written
the session is gone, whatever happens to the auto-fix notification. If the
export itself fails the session stays Active so the reviewer can retry
without losing comments.
"""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from redline_core.errors import HandoffError, InvalidReferenceError, NoActiveSessionError, SessionActiveError
from redline_core.git.changes import ChangeSet, ChangeSetResolver
from redline_core.handoff import AutoFixHandoff, NullHandoff
from redline_core.models import (
    DECISION_LABELS,
    CommentSeverity,
    FileStatus,
    ReviewComment,
    ReviewDecision,
    ReviewDocument,
    ReviewStats,
)
from redline_core.session import Clock, CommentIdFactory, ReviewSession

if TYPE_CHECKING:
    from redline_core.git.repository import GitRepository
    from redline_store.base import BaseStore


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of a successful submission.

    ``warning`` is set when auto-fix was requested but the agent could not be
    notified; the document is written regardless.
    """

    document: ReviewDocument
    path: Path
    latest_path: Path
    warning: str | None = None


DEFAULT_BASE_REF = "HEAD~1"


class SessionOrchestrator:
    def __init__(
        self,
        repository: GitRepository,
        store: BaseStore,
        handoff: AutoFixHandoff | None = None,
        resolver: ChangeSetResolver | None = None,
        id_factory: Callable[[], str] | None = None,
        clock: Clock | None = None,
        logger: logging.Logger | None = None,
    ):
        self._repo = repository
        self._store = store
        self._handoff = handoff or NullHandoff()
        self._log = logger if logger is not None else logging.getLogger(__name__)
        self._resolver = resolver or ChangeSetResolver(repository, logger=self._log)
        # One factory for the orchestrator's lifetime: ids keep increasing
        # across sessions and are never handed out twice.
        self._next_id = id_factory or CommentIdFactory()
        self._clock = clock
        self._session: ReviewSession | None = None
        self.last_change_set: ChangeSet | None = None

    # ------------------------------------------------------------------ #
    # State                                                               #
    # ------------------------------------------------------------------ #

    @property
    def current_session(self) -> ReviewSession | None:
        return self._session

    @property
    def is_active(self) -> bool:
        return self._session is not None

    def _require_session(self, action: str) -> ReviewSession:
        if self._session is None:
            raise NoActiveSessionError(action)
        return self._session

    # ------------------------------------------------------------------ #
    # Transitions                                                         #
    # ------------------------------------------------------------------ #

    def resolve_base_ref(self, base_ref: str) -> str:
        """Validate a base reference.

        ``<commit>~1`` on a root commit has no parent; git's empty tree is
        used instead so every file of that commit shows up as added. Any
        other unknown reference raises InvalidReferenceError.
        """
        if self._repo.is_valid_ref(base_ref):
            return base_ref
        if base_ref.endswith("~1") or base_ref.endswith("^"):
            self._log.warning('Ref "%s" has no parent (initial commit?), using empty tree.', base_ref)
            return self._repo.empty_tree()
        raise InvalidReferenceError(f'Invalid git reference "{base_ref}".')

    def resolve_changes(self, base_ref: str | None = None, head_ref: str = "HEAD") -> ChangeSet:
        """Resolve the change set for a would-be review without starting one."""
        return self._resolve(self.resolve_base_ref(base_ref or DEFAULT_BASE_REF), head_ref)

    def _resolve(self, base_ref: str, head_ref: str) -> ChangeSet:
        change_set = self._resolver.resolve(base_ref, head_ref)
        self.last_change_set = change_set
        return change_set

    def start(self, base_ref: str | None = None, head_ref: str = "HEAD", discard: bool = False) -> ReviewSession | None:
        """Start a review of everything that differs from ``base_ref``.

        Returns the new session, or None when there is nothing to review:
        an empty change set is a no-op, not an error, and leaves the
        orchestrator Idle.
        """
        if self._session is not None and not discard:
            raise SessionActiveError()

        base_ref = self.resolve_base_ref(base_ref or DEFAULT_BASE_REF)
        change_set = self._resolve(base_ref, head_ref)
        # The running session is only dropped once the new base is known good.
        self.cancel()

        if not change_set.files:
            self._log.info("No changes found between %s and %s.", base_ref, head_ref)
            return None

        self._session = ReviewSession(
            base_ref,
            head_ref,
            change_set.files,
            id_factory=self._next_id,
            clock=self._clock,
            logger=self._log,
        )
        self._log.info("Review started: %s..%s (%d files)", base_ref, head_ref, len(change_set.files))
        return self._session

    def cancel(self) -> bool:
        """Discard the active session without exporting. False if already Idle."""
        if self._session is None:
            return False
        self._session = None
        self._log.info("Review cancelled/closed")
        return True

    def submit(self, decision: ReviewDecision | str, summary: str, auto_fix: bool = False) -> SubmitResult:
        """Export the session and return to Idle.

        ExportError from the store propagates and leaves the session Active.
        A failed auto-fix hand-off only produces a warning on the result.
        """
        session = self._require_session("submit")
        decision = ReviewDecision(decision)
        document = session.to_review_document(decision, summary)

        path = self._store.save(document)
        latest = self._store.latest_path
        self._log.info("Review submitted: %s -> %s", DECISION_LABELS[decision], path)
        self._session = None

        warning = None
        if auto_fix:
            try:
                self._handoff.notify(latest)
            except HandoffError as e:
                self._log.warning("Auto-fix hand-off failed: %s", e)
                warning = f"{e} The review was saved to {path}."
        return SubmitResult(document=document, path=path, latest_path=latest, warning=warning)

    # ------------------------------------------------------------------ #
    # Session mutations                                                   #
    # ------------------------------------------------------------------ #

    def add_comment(
        self,
        file: str,
        line: int,
        body: str,
        severity: CommentSeverity | str,
        end_line: int | None = None,
        code_context: str | None = None,
    ) -> ReviewComment | None:
        session = self._require_session("add_comment")
        if code_context is None and session.has_file(file):
            code_context = self._code_context(session, file, line)
        return session.add_comment(file, line, body, severity, end_line=end_line, code_context=code_context)

    def update_comment(self, comment_id: str, body: str, severity: CommentSeverity | str | None = None) -> bool:
        return self._require_session("update_comment").update_comment(comment_id, body, severity)

    def remove_comment(self, comment_id: str) -> bool:
        return self._require_session("remove_comment").remove_comment(comment_id)

    def toggle_resolved(self, comment_id: str) -> bool:
        return self._require_session("toggle_resolved").toggle_resolved(comment_id)

    def toggle_file_reviewed(self, path: str) -> bool:
        return self._require_session("toggle_file_reviewed").toggle_file_reviewed(path)

    def mark_file_reviewed(self, path: str) -> None:
        self._require_session("mark_file_reviewed").mark_file_reviewed(path)

    def unmark_file_reviewed(self, path: str) -> None:
        self._require_session("unmark_file_reviewed").unmark_file_reviewed(path)

    def stats(self) -> ReviewStats:
        return self._require_session("stats").get_stats()

    # ------------------------------------------------------------------ #
    # Read-only content for diff display                                  #
    # ------------------------------------------------------------------ #

    def base_content(self, path: str) -> str:
        """Content of a changed file at the session's base reference ("" for added files)."""
        session = self._require_session("base_content")
        file = session.file_by_path(path)
        if file is None or file.status is FileStatus.ADDED:
            return ""
        source = file.old_path if file.status is FileStatus.RENAMED and file.old_path else file.path
        return self._repo.file_at_ref(source, session.base_ref)

    def working_content(self, path: str) -> str:
        """Current working-tree content of a changed file ("" for deleted files)."""
        session = self._require_session("working_content")
        file = session.file_by_path(path)
        if file is None or file.status is FileStatus.DELETED:
            return ""
        return self._repo.working_file(file.path)

    def file_diff(self, path: str, context: int = 3) -> str:
        """Unified diff between base content and working content; "" for unknown paths."""
        session = self._require_session("file_diff")
        file = session.file_by_path(path)
        if file is None:
            return ""
        before = self.base_content(file.path).splitlines()
        after = self.working_content(file.path).splitlines()
        from_name = "/dev/null" if file.status is FileStatus.ADDED else f"a/{file.old_path or file.path}"
        to_name = "/dev/null" if file.status is FileStatus.DELETED else f"b/{file.path}"
        diff = difflib.unified_diff(before, after, fromfile=from_name, tofile=to_name, n=context, lineterm="")
        return "\n".join(diff)

    def _code_context(self, session: ReviewSession, path: str, line: int) -> str | None:
        # Best effort: the commented line as it reads now (or at the base for
        # deleted files). Never fails the comment.
        file = session.file_by_path(path)
        try:
            if file is not None and file.status is FileStatus.DELETED:
                text = self.base_content(path)
            else:
                text = self.working_content(path)
        except Exception as e:
            self._log.debug("No code context for %s:%d: %s", path, line, e)
            return None
        lines = text.splitlines()
        if 1 <= line <= len(lines):
            return lines[line - 1].strip() or None
        return None
