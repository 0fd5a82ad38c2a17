import os
import logging
from pathlib import Path
from typing import List

from .errors import BrokenChain, NodeError
from .nodes import BackupNode, read_node


logger = logging.getLogger('backuptree')


def build_chain(node: BackupNode) -> List[BackupNode]:
    """
    Collect the backups needed to restore a node, oldest first.

    Starting from the node, each enclosing directory must be a valid backup
    exactly one level below the one inside it, down to the level 0 full
    backup. The returned order is the order archives must be extracted in.

    Args:
        node (BackupNode): Backup to restore

    Returns:
        List[BackupNode]: ``node.level + 1`` backups with levels 0, 1, ..., node.level

    Raises:
        BrokenChain: If an enclosing directory is not a backup or has the wrong level
    """
    # Relative paths run out of parents at the working directory
    path = Path(os.path.abspath(node.path))
    node = node._replace(
        path=path,
        archive_path=path / node.archive_path.name,
        snapshot_path=path / node.snapshot_path.name,
    )
    chain = [node]
    current = node
    while current.level > 0:
        expected = current.level - 1
        directory = current.path.parent
        if directory == current.path:
            raise BrokenChain(expected, None, directory)
        try:
            parent = read_node(directory)
        except NodeError as e:
            logger.error(f"Chain for '{node.path}' broken: {e}")
            raise BrokenChain(expected, None, directory) from e
        if parent.level != expected:
            raise BrokenChain(expected, parent.level, directory)
        chain.append(parent)
        current = parent

    chain.reverse()
    logger.debug(f"Built chain of {len(chain)} backups for '{node.path}'")
    return chain
