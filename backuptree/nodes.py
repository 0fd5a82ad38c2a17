import os
import logging
from pathlib import Path
from typing import List, NamedTuple, Tuple, Union

from .errors import (
    AmbiguousArchive,
    AmbiguousSnapshot,
    InvalidLevelFormat,
    NoArchiveFound,
    NodeUnreadable,
    NoSnapshotFound,
)
from .naming import ARCHIVE_NAMES, decode_level, is_snapshot_name


logger = logging.getLogger('backuptree')

_ARCHIVE_NAMES = frozenset(ARCHIVE_NAMES.values())


class BackupNode(NamedTuple):
    """
    One backup as found on disk.

    The parent of a node is not stored: it is the directory that encloses
    ``path``.
    """

    path: Path
    level: int
    archive_path: Path
    snapshot_path: Path

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def is_full(self) -> bool:
        return self.level == 0


def scan_directory(path: Union[str, Path]) -> Tuple[List[str], List[str]]:
    """
    List the archive and snapshot shaped files directly inside a directory.

    Args:
        path (Union[str, Path]): Directory to inspect

    Returns:
        Tuple[List[str], List[str]]: Sorted archive names and snapshot names

    Raises:
        NodeUnreadable: If the directory cannot be listed
    """
    archives = []
    snapshots = []
    try:
        with os.scandir(path) as entries:
            for entry in entries:
                if not entry.is_file():
                    continue
                if entry.name in _ARCHIVE_NAMES:
                    archives.append(entry.name)
                elif is_snapshot_name(entry.name):
                    snapshots.append(entry.name)
    except OSError as e:
        raise NodeUnreadable(path, e.strerror or str(e)) from e
    return sorted(archives), sorted(snapshots)


def node_from_scan(path: Union[str, Path], archives: List[str], snapshots: List[str]) -> BackupNode:
    """Build a node from the result of scan_directory, or raise the matching NodeError."""
    path = Path(path)
    if not archives:
        raise NoArchiveFound(path)
    if len(archives) > 1:
        raise AmbiguousArchive(path, ", ".join(archives))
    if not snapshots:
        raise NoSnapshotFound(path)
    if len(snapshots) > 1:
        raise AmbiguousSnapshot(path, ", ".join(snapshots))
    try:
        level = decode_level(snapshots[0])
    except InvalidLevelFormat as e:
        raise InvalidLevelFormat(path, e.detail) from e
    return BackupNode(
        path=path,
        level=level,
        archive_path=path / archives[0],
        snapshot_path=path / snapshots[0],
    )


def read_node(path: Union[str, Path]) -> BackupNode:
    """
    Read one directory as a backup node.

    Only the immediate files of the directory are looked at. The directory
    must hold exactly one archive and exactly one snapshot whose name
    decodes to a level.

    Args:
        path (Union[str, Path]): Directory to read

    Returns:
        BackupNode: The backup stored in the directory

    Raises:
        NodeError: The subclass naming why the directory is not a backup
    """
    archives, snapshots = scan_directory(path)
    node = node_from_scan(path, archives, snapshots)
    logger.debug(f"Read level {node.level} backup at '{node.path}'")
    return node
