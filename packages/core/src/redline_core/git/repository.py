"""Thin GitPython wrapper around a local working tree.

Every query goes through the git CLI that GitPython drives, so results match
what the reviewer sees with plain ``git`` in a terminal. Methods that read
content never raise for missing files: a path that does not exist at a
reference yields empty content, which is how "before" content is synthesised
for added files.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from git import GitCommandError, Repo
from git.exc import InvalidGitRepositoryError, NoSuchPathError

from redline_core.errors import NotARepositoryError
from redline_core.models import CommitInfo, normalize_path

# Git's well-known empty tree object. Diffing against it shows every file as
# added, which is the only sensible base for a root commit.
EMPTY_TREE = "4b825dc642cb6eb9a060e54bf899d15f3b4bab47"


class GitRepository:
    """A local git work tree.

    Construction is the "valid repository" precondition check: a directory
    outside any work tree raises NotARepositoryError before any query runs.
    """

    def __init__(self, working_dir: str | Path, logger: logging.Logger | None = None):
        self._log = logger if logger is not None else logging.getLogger(__name__)
        try:
            self._repo = Repo(str(working_dir), search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise NotARepositoryError(f"{working_dir} is not a git repository.")
        if self._repo.bare or self._repo.working_tree_dir is None:
            raise NotARepositoryError(f"{working_dir} is a bare repository with no working tree.")
        self._git = self._repo.git

    @property
    def root(self) -> Path:
        return Path(self._repo.working_tree_dir)

    # ------------------------------------------------------------------ #
    # Change queries (raw output, parsed by the resolver)                 #
    # ------------------------------------------------------------------ #

    # -z keeps paths verbatim; without it git C-quotes non-ASCII names.
    def name_status(self, *rev_args: str) -> str:
        """``git diff --name-status -z -M <rev_args>``."""
        return self._git.diff("--name-status", "-z", "-M", *rev_args)

    def numstat(self, *rev_args: str) -> str:
        """``git diff --numstat -z -M <rev_args>``."""
        return self._git.diff("--numstat", "-z", "-M", *rev_args)

    def untracked_paths(self) -> list[str]:
        output = self._git.ls_files("-z", "--others", "--exclude-standard")
        return [normalize_path(p) for p in output.split("\0") if p.strip()]

    def working_line_count(self, path: str) -> int:
        """Number of lines in a working-tree file; 0 for binary or unreadable files."""
        try:
            data = (self.root / path).read_bytes()
        except OSError:
            return 0
        if b"\0" in data:
            return 0
        lines = data.count(b"\n")
        if data and not data.endswith(b"\n"):
            lines += 1
        return lines

    # ------------------------------------------------------------------ #
    # Content                                                             #
    # ------------------------------------------------------------------ #

    def file_at_ref(self, path: str, ref: str) -> str:
        """Return the content of ``path`` at ``ref``, or "" if it does not exist there."""
        spec = f"{ref}:{normalize_path(path)}"
        try:
            return self._git.show(spec, strip_newline_in_stdout=False)
        except (GitCommandError, ValueError) as e:
            self._log.debug("No content for %s: %s", spec, e)
            return ""

    def working_file(self, path: str) -> str:
        """Return the working-tree content of ``path``, or "" if it is missing."""
        try:
            return (self.root / normalize_path(path)).read_text(encoding="utf-8", errors="replace")
        except OSError:
            return ""

    # ------------------------------------------------------------------ #
    # References                                                          #
    # ------------------------------------------------------------------ #

    def recent_commits(self, count: int = 10) -> list[CommitInfo]:
        """Most recent commits reachable from HEAD, newest first.

        Returns an empty list for a repository without commits.
        """
        try:
            commits = list(self._repo.iter_commits(max_count=count))
        except (GitCommandError, ValueError) as e:
            self._log.warning("Could not list recent commits: %s", e)
            return []
        return [
            CommitInfo(
                hash=c.hexsha,
                message=c.summary if isinstance(c.summary, str) else c.summary.decode("utf-8", "replace"),
                author=c.author.name or "",
                date=c.committed_datetime.isoformat(),
            )
            for c in commits
        ]

    def is_valid_ref(self, ref: str) -> bool:
        try:
            self._git.rev_parse("--verify", "--quiet", f"{ref}^{{object}}")
            return True
        except GitCommandError:
            return False

    def empty_tree(self) -> str:
        """Hash of the empty tree, written to the object store so diffs against it work."""
        try:
            return self._git.mktree(istream=subprocess.DEVNULL).strip() or EMPTY_TREE
        except GitCommandError as e:
            self._log.debug("Could not write the empty tree: %s", e)
            return EMPTY_TREE

    def current_branch(self) -> str:
        return self._git.rev_parse("--abbrev-ref", "HEAD").strip()

    def head_short_hash(self) -> str:
        return self._git.rev_parse("--short", "HEAD").strip()
