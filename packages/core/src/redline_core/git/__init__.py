from redline_core.git.changes import ChangeSet, ChangeSetResolver, PassFailure
from redline_core.git.repository import EMPTY_TREE, GitRepository

__all__ = ["EMPTY_TREE", "ChangeSet", "ChangeSetResolver", "GitRepository", "PassFailure"]
