"""FileStore: review documents as TOML files inside the repository.

Layout under the output directory (``.redline/`` by default):

  review-2026-10-19-101500.toml   one file per submission, never overwritten
  latest.toml                     copy of the most recent submission

Fix agents always read ``latest.toml``; they never have to discover the
timestamped name. The timestamped files are the history.

The output directory is kept out of version control by appending it to the
repository's ``.gitignore``. That is a convenience: when it fails the error
is logged and the submission still succeeds.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from redline_core.errors import ExportError
from redline_core.models import ReviewDocument
from redline_store.base import BaseStore
from redline_store.models import HistoryEntry
from redline_store.toml_format import dump_document, load_document

logger = logging.getLogger(__name__)

LATEST_NAME = "latest.toml"
_HISTORY_GLOB = "review-*.toml"


class FileStore(BaseStore):
    def __init__(
        self,
        root: str | Path,
        output_dir: str = ".redline",
        add_to_gitignore: bool = True,
    ):
        self._root = Path(root)
        self._output_dir_setting = output_dir
        self._dir = self._root / output_dir
        self._add_to_gitignore = add_to_gitignore

    @property
    def output_dir(self) -> Path:
        return self._dir

    @property
    def latest_path(self) -> Path:
        return self._dir / LATEST_NAME

    def save(self, document: ReviewDocument) -> Path:
        """Write the timestamped document, then overwrite latest.toml with the same content."""
        content = dump_document(document)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            path = self._unique_path(document.id)
            path.write_text(content, encoding="utf-8")
            self.latest_path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ExportError(f"Could not write review to {self._dir}: {e}") from e

        logger.info("Review saved: %s", path)
        logger.info("Latest review updated: %s", self.latest_path)

        if self._add_to_gitignore:
            self.ensure_gitignore()
        return path

    def list_history(self) -> list[HistoryEntry]:
        if not self._dir.is_dir():
            return []
        entries = []
        for path in self._dir.glob(_HISTORY_GLOB):
            try:
                mtime = path.stat().st_mtime
            except OSError:
                continue
            entries.append(HistoryEntry(name=path.name, path=path, modified_at=datetime.fromtimestamp(mtime)))
        # Names embed the start time, which breaks ties between equal mtimes.
        entries.sort(key=lambda e: (e.modified_at, e.name), reverse=True)
        return entries

    def read_latest(self) -> str | None:
        """Text of latest.toml, or None if no review was submitted yet."""
        try:
            return self.latest_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error("Failed to read %s: %s", self.latest_path, e)
            return None

    def load(self, path: str | Path) -> ReviewDocument:
        return load_document(Path(path).read_text(encoding="utf-8"))

    def ensure_gitignore(self) -> bool:
        """Append the output directory to .gitignore if missing. Returns True if it was added."""
        if Path(self._output_dir_setting).is_absolute():
            logger.debug("Output directory %s is outside the repository; .gitignore left alone.", self._dir)
            return False

        gitignore = self._root / ".gitignore"
        bare = self._output_dir_setting.strip().rstrip("/")
        entry = bare + "/"
        try:
            content = gitignore.read_text(encoding="utf-8") if gitignore.exists() else ""
            if any(line.strip() in (entry, bare, "/" + entry, "/" + bare) for line in content.splitlines()):
                return False
            if content and not content.endswith("\n"):
                content += "\n"
            gitignore.write_text(content + entry + "\n", encoding="utf-8")
        except OSError as e:
            logger.error("Failed to update .gitignore: %s", e)
            return False
        logger.info("Added %s to .gitignore", entry)
        return True

    def _unique_path(self, document_id: str) -> Path:
        # Two sessions started within the same second share an id; the second
        # submission gets a numeric suffix instead of replacing the first.
        path = self._dir / f"{document_id}.toml"
        n = 2
        while path.exists():
            path = self._dir / f"{document_id}-{n}.toml"
            n += 1
        return path
