"""Change-set resolution: what differs from a baseline, committed or not.

Reviewers need to see everything that differs from the base reference, not
just what is committed, so that a file created a minute ago is reviewable
without forcing a commit first. The resolver merges four sources in a fixed
order:

  1. committed: ``git diff base head``
  2. staged: ``git diff --cached``
  3. unstaged: ``git diff``
  4. untracked: ``git ls-files --others --exclude-standard``

Deduplication is first-seen-wins by path. A later pass never changes the
status recorded by an earlier one; the staged and unstaged passes only add
their line counts to the existing entry. This keeps a file that is staged and
then edited again from showing up twice.

Every pass is isolated: if one fails (no commits yet, unknown base ref, ...)
the error is logged and recorded on the ChangeSet and the pass contributes no
files. Resolution itself only fails when the directory is not a repository,
which GitRepository reports at construction time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from redline_core.models import ChangedFile, FileStatus, normalize_path

if TYPE_CHECKING:
    from redline_core.git.repository import GitRepository

_STATUS_LETTERS = {
    "A": FileStatus.ADDED,
    "D": FileStatus.DELETED,
    "R": FileStatus.RENAMED,
    "M": FileStatus.MODIFIED,
}


def map_status(code: str) -> FileStatus:
    """Map a git status letter (``M``, ``R100``, ...) to a FileStatus.

    Anything unrecognised, including untracked markers, counts as added.
    """
    return _STATUS_LETTERS.get(code.strip()[:1].upper(), FileStatus.ADDED)


@dataclass(frozen=True)
class NameStatusEntry:
    path: str
    status: FileStatus
    old_path: str | None = None


@dataclass(frozen=True)
class NumstatEntry:
    path: str
    additions: int
    deletions: int
    old_path: str | None = None


def parse_name_status(output: str) -> list[NameStatusEntry]:
    """Parse ``git diff --name-status -z`` output.

    Fields are NUL-separated and paths are verbatim. A status code is followed
    by one path, or by two (old, new) for renames and copies; the entry is
    keyed by the new path.
    """
    fields = output.split("\0")
    entries = []
    i = 0
    while i < len(fields):
        code = fields[i].strip()
        i += 1
        if not code:
            continue
        count = 2 if code[:1].upper() in ("R", "C") else 1
        paths = fields[i : i + count]
        i += count
        if len(paths) < count:
            break
        status = map_status(code)
        path = normalize_path(paths[-1])
        if not path:
            continue
        old_path = None
        if status is FileStatus.RENAMED:
            old_path = normalize_path(paths[0]) or None
        entries.append(NameStatusEntry(path=path, status=status, old_path=old_path))
    return entries


def parse_numstat(output: str) -> list[NumstatEntry]:
    """Parse ``git diff --numstat -z`` output. Binary files (``-``) count as zero.

    A record is ``added<TAB>deleted<TAB>path``. For a rename the path field is
    empty and the old and new paths follow as two separate fields.
    """
    fields = output.split("\0")
    entries = []
    i = 0
    while i < len(fields):
        parts = fields[i].split("\t", 2)
        i += 1
        if len(parts) < 3:
            continue
        added, deleted, raw_path = parts
        old = None
        if not raw_path:
            if i + 2 > len(fields):
                break
            old, raw_path = fields[i], fields[i + 1]
            i += 2
        path = normalize_path(raw_path)
        if not path:
            continue
        entries.append(
            NumstatEntry(
                path=path,
                additions=int(added) if added.isdigit() else 0,
                deletions=int(deleted) if deleted.isdigit() else 0,
                old_path=normalize_path(old) if old else None,
            )
        )
    return entries


@dataclass(frozen=True)
class PassFailure:
    """A change source that could not be read during resolution."""

    name: str
    error: str


@dataclass
class ChangeSet:
    """Result of a resolution: ordered, duplicate-free files plus recorded pass failures."""

    files: list[ChangedFile] = field(default_factory=list)
    failures: list[PassFailure] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self):
        return iter(self.files)

    def paths(self) -> list[str]:
        return [f.path for f in self.files]


@dataclass
class _Entry:
    path: str
    status: FileStatus
    old_path: str | None
    additions: int = 0
    deletions: int = 0

    def freeze(self) -> ChangedFile:
        return ChangedFile(
            path=self.path,
            status=self.status,
            additions=self.additions,
            deletions=self.deletions,
            old_path=self.old_path if self.status is FileStatus.RENAMED else None,
        )


class ChangeSetResolver:
    """Produces the change set of a working tree relative to a base reference."""

    def __init__(self, repository: GitRepository, logger: logging.Logger | None = None):
        self._repo = repository
        self._log = logger if logger is not None else logging.getLogger(__name__)

    def resolve(self, base_ref: str, head_ref: str = "HEAD") -> ChangeSet:
        self._log.info("Getting changed files: %s..%s", base_ref, head_ref)

        merged: dict[str, _Entry] = {}
        result = ChangeSet()

        passes = [
            ("committed", lambda: self._committed(merged, base_ref, head_ref)),
            ("staged", lambda: self._working(merged, "--cached")),
            ("unstaged", lambda: self._working(merged)),
            ("untracked", lambda: self._untracked(merged)),
        ]
        for name, run in passes:
            try:
                apply = run()
            except Exception as e:
                # A single source failing never aborts resolution; the pass
                # simply contributes nothing.
                self._log.warning("Could not get %s changes: %s", name, e)
                result.failures.append(PassFailure(name=name, error=str(e)))
                continue
            apply()

        result.files = [entry.freeze() for entry in merged.values()]
        self._log.info("Found %d changed file(s) (committed + working tree)", len(result.files))
        return result

    # Each pass reads everything it needs first and returns a closure that
    # merges the results, so a query failing half-way leaves `merged` untouched.

    def _committed(self, merged: dict[str, _Entry], base_ref: str, head_ref: str):
        entries = parse_name_status(self._repo.name_status(base_ref, head_ref))
        stats = parse_numstat(self._repo.numstat(f"{base_ref}..{head_ref}"))
        by_new = {s.path: s for s in stats}
        by_old = {s.old_path: s for s in stats if s.old_path}

        def apply():
            for entry in entries:
                if entry.path in merged:
                    continue
                stat = by_new.get(entry.path) or (by_old.get(entry.old_path) if entry.old_path else None)
                merged[entry.path] = _Entry(
                    path=entry.path,
                    status=entry.status,
                    old_path=entry.old_path,
                    additions=stat.additions if stat else 0,
                    deletions=stat.deletions if stat else 0,
                )

        return apply

    def _working(self, merged: dict[str, _Entry], *flags: str):
        entries = parse_name_status(self._repo.name_status(*flags))
        stats = parse_numstat(self._repo.numstat(*flags))

        def apply():
            for entry in entries:
                if entry.path not in merged:
                    merged[entry.path] = _Entry(path=entry.path, status=entry.status, old_path=entry.old_path)
            for stat in stats:
                target = merged.get(stat.path)
                if target is not None:
                    target.additions += stat.additions
                    target.deletions += stat.deletions

        return apply

    def _untracked(self, merged: dict[str, _Entry]):
        paths = [p for p in self._repo.untracked_paths() if p not in merged]
        counts = {p: self._repo.working_line_count(p) for p in paths}

        def apply():
            for path in paths:
                if path not in merged:
                    merged[path] = _Entry(path=path, status=FileStatus.ADDED, old_path=None, additions=counts[path])

        return apply
