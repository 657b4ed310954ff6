from redline_store.base import BaseStore
from redline_store.file import LATEST_NAME, FileStore
from redline_store.models import HistoryEntry
from redline_store.toml_format import dump_document, load_document

__all__ = ["LATEST_NAME", "BaseStore", "FileStore", "HistoryEntry", "dump_document", "load_document"]
