"""Exceptions raised by the review core.

Not-found conditions (unknown comment id, file outside the change set) are
not exceptions: they are reported through False/None return values.
"""

from __future__ import annotations


class RedlineError(Exception):
    """Base class for all redline errors."""


class NotARepositoryError(RedlineError):
    """The working directory is not inside a git work tree."""


class InvalidReferenceError(RedlineError):
    """A git reference does not resolve to a commit."""


class SessionStateError(RedlineError):
    """An operation was requested in a state that does not allow it."""


class NoActiveSessionError(SessionStateError):
    def __init__(self, action: str = "this operation"):
        super().__init__(f"No active review session: cannot perform {action}.")


class SessionActiveError(SessionStateError):
    def __init__(self):
        super().__init__("A review is already in progress. Discard it before starting a new one.")


class ExportError(RedlineError):
    """The review document could not be written. The session is kept."""


class HandoffError(RedlineError):
    """The auto-fix agent could not be notified. The submission still stands."""
