"""In-memory review session, the single source of truth for one review.

A session is created with a fixed change set and mutated in place by comment
and reviewed-flag operations until it is submitted or discarded. Nothing in
here touches the filesystem or git; submission snapshots the session into an
immutable ReviewDocument and the caller decides where that goes.

Unknown comment ids and paths outside the change set are not errors: they
arise from benign races (a click on a comment that was just deleted) and are
reported through False/None return values so callers can give feedback.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterable

from redline_core.models import (
    ChangedFile,
    CommentSeverity,
    ReviewComment,
    ReviewDecision,
    ReviewDocument,
    ReviewedFile,
    ReviewStats,
    normalize_path,
)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CommentIdFactory:
    """Monotonic comment id source: ``comment-1``, ``comment-2``, ...

    Ids are never reused. Whoever constructs sessions owns one factory and
    hands it to every session so ids stay unique across sessions; tests build
    their own to get deterministic ids.
    """

    def __init__(self, prefix: str = "comment-", start: int = 1):
        self._prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self._prefix}{next(self._counter)}"


def format_document_id(started_at: datetime) -> str:
    """``review-YYYY-MM-DD-HHMMSS`` from the session start time."""
    return f"review-{started_at:%Y-%m-%d-%H%M%S}"


class _FileState:
    __slots__ = ("file", "reviewed")

    def __init__(self, file: ChangedFile):
        self.file = file
        self.reviewed = False


class ReviewSession:
    def __init__(
        self,
        base_ref: str,
        head_ref: str,
        files: Iterable[ChangedFile],
        id_factory: Callable[[], str] | None = None,
        clock: Clock | None = None,
        logger: logging.Logger | None = None,
    ):
        self._base_ref = base_ref
        self._head_ref = head_ref
        self._clock = clock or _utcnow
        self._next_id = id_factory or CommentIdFactory()
        self._log = logger if logger is not None else logging.getLogger(__name__)
        self._started_at = self._clock()

        self._files: dict[str, _FileState] = {}
        for f in files:
            # First occurrence wins, mirroring the resolver's dedup rule.
            self._files.setdefault(f.path, _FileState(f))
        self._comments: dict[str, ReviewComment] = {}

    # ------------------------------------------------------------------ #
    # Comments                                                            #
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
        """Attach a comment to a line (or line range) of a changed file.

        Returns None without storing anything when ``file`` is not part of
        the change set. Raises ValueError for malformed input: a line below
        1, an end line before the start line, or an unknown severity.
        """
        severity = CommentSeverity(severity)
        if line < 1:
            raise ValueError(f"Line numbers are 1-indexed, got {line}.")
        if end_line is not None and end_line < line:
            raise ValueError(f"end_line {end_line} is before line {line}.")

        path = normalize_path(file)
        if path not in self._files:
            self._log.warning("Ignoring comment on %s: file is not part of this review.", path)
            return None

        comment = ReviewComment(
            id=self._next_id(),
            file=path,
            line=line,
            end_line=end_line if end_line != line else None,
            severity=severity,
            body=body,
            code_context=code_context,
            resolved=False,
            timestamp=self._clock().isoformat(),
        )
        self._comments[comment.id] = comment
        self._log.info("Comment added: %s:%d [%s]", path, line, severity.value)
        return comment

    def remove_comment(self, comment_id: str) -> bool:
        return self._comments.pop(comment_id, None) is not None

    def update_comment(self, comment_id: str, body: str, severity: CommentSeverity | str | None = None) -> bool:
        comment = self._comments.get(comment_id)
        if comment is None:
            return False
        comment.body = body
        if severity is not None:
            comment.severity = CommentSeverity(severity)
        return True

    def toggle_resolved(self, comment_id: str) -> bool:
        """Flip the resolved flag and return the new value (False for unknown ids)."""
        comment = self._comments.get(comment_id)
        if comment is None:
            return False
        comment.resolved = not comment.resolved
        return comment.resolved

    def get_comment(self, comment_id: str) -> ReviewComment | None:
        return self._comments.get(comment_id)

    def comments(self) -> list[ReviewComment]:
        """All comments in insertion order."""
        return list(self._comments.values())

    def comments_for_file(self, path: str) -> list[ReviewComment]:
        path = normalize_path(path)
        return [c for c in self._comments.values() if c.file == path]

    # ------------------------------------------------------------------ #
    # File review status                                                  #
    # ------------------------------------------------------------------ #

    def toggle_file_reviewed(self, path: str) -> bool:
        state = self._files.get(normalize_path(path))
        if state is None:
            return False
        state.reviewed = not state.reviewed
        return state.reviewed

    def mark_file_reviewed(self, path: str) -> None:
        state = self._files.get(normalize_path(path))
        if state is not None:
            state.reviewed = True

    def unmark_file_reviewed(self, path: str) -> None:
        state = self._files.get(normalize_path(path))
        if state is not None:
            state.reviewed = False

    def is_file_reviewed(self, path: str) -> bool:
        state = self._files.get(normalize_path(path))
        return state.reviewed if state is not None else False

    # ------------------------------------------------------------------ #
    # Accessors                                                           #
    # ------------------------------------------------------------------ #

    @property
    def base_ref(self) -> str:
        return self._base_ref

    @property
    def head_ref(self) -> str:
        return self._head_ref

    @property
    def started_at(self) -> datetime:
        return self._started_at

    def files(self) -> list[ChangedFile]:
        return [state.file for state in self._files.values()]

    def file_paths(self) -> list[str]:
        return list(self._files)

    def file_by_path(self, path: str) -> ChangedFile | None:
        state = self._files.get(normalize_path(path))
        return state.file if state is not None else None

    def has_file(self, path: str) -> bool:
        return normalize_path(path) in self._files

    def reviewed_files(self) -> list[ReviewedFile]:
        return [
            ReviewedFile(path=state.file.path, status=state.file.status, reviewed=state.reviewed)
            for state in self._files.values()
        ]

    # ------------------------------------------------------------------ #
    # Stats & export                                                      #
    # ------------------------------------------------------------------ #

    def get_stats(self) -> ReviewStats:
        """Recompute counts from current state. Never cached."""
        severities = [c.severity for c in self._comments.values()]
        return ReviewStats(
            files_changed=len(self._files),
            files_reviewed=sum(1 for state in self._files.values() if state.reviewed),
            total_comments=len(severities),
            must_fix=severities.count(CommentSeverity.MUST_FIX),
            suggestions=severities.count(CommentSeverity.SUGGESTION),
            nitpicks=severities.count(CommentSeverity.NITPICK),
            questions=severities.count(CommentSeverity.QUESTION),
        )

    def to_review_document(self, decision: ReviewDecision | str, summary: str) -> ReviewDocument:
        """Snapshot the session. Does not mutate it.

        The document id derives from the immutable start time, so repeated
        calls within one session produce the same id; submission is the
        terminal action for a session.
        """
        return ReviewDocument(
            id=format_document_id(self._started_at),
            timestamp=self._started_at.isoformat(),
            base_ref=self._base_ref,
            head_ref=self._head_ref,
            decision=ReviewDecision(decision),
            summary=summary,
            stats=self.get_stats(),
            comments=tuple(replace(c) for c in self._comments.values()),
            reviewed_files=tuple(self.reviewed_files()),
        )
