"""
Backuptree - incremental tar backups kept as a directory tree.

Every backup is a directory holding one archive and one tar snapshot file
whose name carries the incremental level. Incremental backups live inside
the directory of the backup they build on, so the tree on disk is the only
index: this package discovers backups, resolves references to them and
rebuilds the chain of archives needed for a restore.
"""

__version__ = "0.1.0"
__author__ = "ijd"

# Export public API
from .operations import BackupOperations
from .nodes import BackupNode, read_node
from .tree import TreeEntry, walk_tree
from .resolver import resolve
from .chain import build_chain

__all__ = [
    "BackupOperations",
    "BackupNode",
    "TreeEntry",
    "read_node",
    "walk_tree",
    "resolve",
    "build_chain",
]
