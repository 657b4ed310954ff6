"""Store-side data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class HistoryEntry:
    """A previously written review document on disk."""

    name: str  # file name, e.g. "review-2026-10-19-101500.toml"
    path: Path
    modified_at: datetime
