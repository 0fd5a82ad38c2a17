import os
import logging
from pathlib import Path
from typing import Iterator, NamedTuple, Optional, Union

from .errors import DestinationUnreadable, NodeError, NodeUnreadable
from .nodes import BackupNode, node_from_scan, scan_directory


logger = logging.getLogger('backuptree')


class TreeEntry(NamedTuple):
    """One directory reported by walk_tree: a valid node or the reason it is not one."""

    depth: int
    path: Path
    node: Optional[BackupNode] = None
    error: Optional[NodeError] = None

    @property
    def valid(self) -> bool:
        return self.node is not None


def _subdirectories(path: Path):
    with os.scandir(path) as entries:
        names = [entry.name for entry in entries if entry.is_dir(follow_symlinks=False)]
    # Names are timestamp prefixed, so sorting gives chronological order
    return [path / name for name in sorted(names)]


def walk_tree(root: Union[str, Path], depth: int = 0) -> Iterator[TreeEntry]:
    """
    Enumerate every backup below a destination, depth first.

    Each subdirectory is reported at the current depth, then walked at
    ``depth + 1`` whether it was a valid node or not, so the incremental
    children of a damaged backup are still found. Directories without any
    archive or snapshot file are not reported but are still walked.

    The walk re-reads the disk every time it is called.

    Args:
        root (Union[str, Path]): Destination directory to walk
        depth (int, optional): Depth reported for the root's children. Defaults to 0.

    Returns:
        Iterator[TreeEntry]: Lazy sequence of entries in sorted name order

    Raises:
        DestinationUnreadable: If the root cannot be listed. Raised by this
            call itself, before iteration starts.
    """
    root = Path(root)
    if not root.exists():
        raise DestinationUnreadable(root, "does not exist")
    if not root.is_dir():
        raise DestinationUnreadable(root, "not a directory")
    try:
        children = _subdirectories(root)
    except OSError as e:
        raise DestinationUnreadable(root, e.strerror or str(e)) from e
    return _walk(children, depth)


def _walk(children, depth: int) -> Iterator[TreeEntry]:
    for child in children:
        try:
            archives, snapshots = scan_directory(child)
        except NodeUnreadable as e:
            logger.warning(str(e))
            yield TreeEntry(depth, child, error=e)
            continue

        if archives or snapshots:
            try:
                node = node_from_scan(child, archives, snapshots)
            except NodeError as e:
                logger.warning(f"Invalid backup node: {e}")
                yield TreeEntry(depth, child, error=e)
            else:
                yield TreeEntry(depth, child, node=node)

        try:
            grandchildren = _subdirectories(child)
        except OSError as e:
            error = NodeUnreadable(child, e.strerror or str(e))
            logger.warning(str(error))
            yield TreeEntry(depth, child, error=error)
            continue
        yield from _walk(grandchildren, depth + 1)
