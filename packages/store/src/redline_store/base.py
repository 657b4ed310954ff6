"""Abstract store interface.

The orchestrator depends on BaseStore, not on a concrete backend, so the
submission path can be exercised against an in-memory or failing store in
tests, and other backends can be added without touching the core.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from redline_core.models import ReviewDocument
    from redline_store.models import HistoryEntry


class BaseStore(ABC):
    """Persistence layer for submitted review documents."""

    @property
    @abstractmethod
    def latest_path(self) -> Path:
        """Fixed location of the most recent document, the fix agent's hand-off point."""

    @abstractmethod
    def save(self, document: ReviewDocument) -> Path:
        """Persist a document and refresh the latest copy. Returns the timestamped path.

        Raises ExportError when the document cannot be written.
        """

    @abstractmethod
    def list_history(self) -> list[HistoryEntry]:
        """Return previously saved documents, newest first.

        Returns an empty list if nothing was saved yet; never raises.
        """

    def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """
