"""Review data models.

These types are shared by every layer: the git resolver produces
ChangedFile lists, the session owns ReviewComment objects, and the store
serializes ReviewDocument snapshots. Nothing here performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class CommentSeverity(str, Enum):
    MUST_FIX = "must_fix"
    SUGGESTION = "suggestion"
    NITPICK = "nitpick"
    QUESTION = "question"


class ReviewDecision(str, Enum):
    APPROVE = "approve"
    COMMENT = "comment"
    REQUEST_CHANGES = "request_changes"


# Most urgent first.
SEVERITY_ORDER: tuple[CommentSeverity, ...] = (
    CommentSeverity.MUST_FIX,
    CommentSeverity.SUGGESTION,
    CommentSeverity.NITPICK,
    CommentSeverity.QUESTION,
)

SEVERITY_LABELS: dict[CommentSeverity, str] = {
    CommentSeverity.MUST_FIX: "Must Fix",
    CommentSeverity.SUGGESTION: "Suggestion",
    CommentSeverity.NITPICK: "Nitpick",
    CommentSeverity.QUESTION: "Question",
}

DECISION_LABELS: dict[ReviewDecision, str] = {
    ReviewDecision.APPROVE: "Approved",
    ReviewDecision.COMMENT: "Commented",
    ReviewDecision.REQUEST_CHANGES: "Changes Requested",
}


def normalize_path(path: str) -> str:
    """Return a repo-relative path with forward slashes and no leading './'."""
    path = path.strip().replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


@dataclass(frozen=True)
class ChangedFile:
    """One file of the change set.

    Frozen: a session replaces change metadata, it never mutates it.
    ``old_path`` is only meaningful for renames.
    """

    path: str
    status: FileStatus
    additions: int = 0
    deletions: int = 0
    old_path: str | None = None


@dataclass(frozen=True)
class CommitInfo:
    """A commit offered to the reviewer when picking a base reference."""

    hash: str
    message: str
    author: str
    date: str

    @property
    def short_hash(self) -> str:
        return self.hash[:7]


@dataclass
class ReviewComment:
    """A line-level review comment.

    Created only through ReviewSession.add_comment(). ``end_line`` is None
    for single-line comments; ``code_context`` is an advisory snippet of the
    commented source line.
    """

    id: str
    file: str
    line: int
    severity: CommentSeverity
    body: str
    timestamp: str  # ISO-8601
    end_line: int | None = None
    code_context: str | None = None
    resolved: bool = False


@dataclass(frozen=True)
class ReviewedFile:
    path: str
    status: FileStatus
    reviewed: bool


@dataclass(frozen=True)
class ReviewStats:
    """Counts derived from a session, computed on demand, never stored."""

    files_changed: int = 0
    files_reviewed: int = 0
    total_comments: int = 0
    must_fix: int = 0
    suggestions: int = 0
    nitpicks: int = 0
    questions: int = 0


@dataclass(frozen=True)
class ReviewDocument:
    """Immutable snapshot of a submitted review, the unit the store persists."""

    id: str  # "review-YYYY-MM-DD-HHMMSS"
    timestamp: str  # ISO-8601 session start
    base_ref: str
    head_ref: str
    decision: ReviewDecision
    summary: str
    stats: ReviewStats
    comments: tuple[ReviewComment, ...] = field(default_factory=tuple)
    reviewed_files: tuple[ReviewedFile, ...] = field(default_factory=tuple)

    def actionable_comments(self) -> list[ReviewComment]:
        """Unresolved must_fix and suggestion comments, the ones a fix agent applies."""
        wanted = {CommentSeverity.MUST_FIX, CommentSeverity.SUGGESTION}
        return [c for c in self.comments if c.severity in wanted and not c.resolved]
