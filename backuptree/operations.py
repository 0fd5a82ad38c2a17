import os
import shutil
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .archiver import TarArchiver
from .chain import build_chain
from .errors import ArchiverError, BackupTreeError, NodeError
from .naming import archive_name, compression_for_archive, encode_level
from .nodes import BackupNode, read_node
from .resolver import resolve
from .tree import TreeEntry, walk_tree


# Get logger instance (configuration is handled in cli.py)
logger = logging.getLogger('backuptree')

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
KINDS = ("full", "incremental")


class BackupOperations:
    """Handles backup operations over a destination tree: create, list, show, restore and remove."""

    def __init__(self, destination: Union[str, Path], compression: str = "gzip", archiver=None):
        """
        Initialize BackupOperations for a destination directory.

        Args:
            destination (Union[str, Path]): Root directory holding all backups
            compression (str, optional): Compression for new backups. Defaults to "gzip".
            archiver (optional): Object with create/extract methods. Defaults to TarArchiver().

        Raises:
            ValueError: If the compression is unknown
        """
        self.destination = Path(destination)
        self.compression = compression
        self.archive_name = archive_name(compression)
        self.archiver = archiver if archiver is not None else TarArchiver()
        logger.debug(f"Initialized BackupOperations for destination '{self.destination}'")

    def _timestamp(self) -> str:
        return datetime.now().strftime(TIMESTAMP_FORMAT)

    def _check_source(self, source: Union[str, Path]) -> Path:
        source_path = Path(source).resolve()
        if not source_path.exists():
            raise ValueError(f"Source directory '{source}' does not exist")
        if not source_path.is_dir():
            raise ValueError(f"'{source}' is not a directory")
        if not os.access(source_path, os.R_OK):
            raise PermissionError(f"No permission to read directory '{source}'")
        return source_path

    def create(self, kind: str, source: Union[str, Path], parent: Optional[str] = None) -> BackupNode:
        """
        Create a full or incremental backup.

        Args:
            kind (str): "full" or "incremental"
            source (Union[str, Path]): Directory to back up
            parent (Optional[str]): Reference to the parent backup, required for incremental

        Returns:
            BackupNode: The new backup

        Raises:
            ValueError: If the kind is unknown or an incremental has no parent
        """
        if kind == "full":
            return self.create_full(source)
        if kind == "incremental":
            if not parent:
                raise ValueError("An incremental backup needs a parent backup")
            return self.create_incremental(source, parent)
        raise ValueError(f"Unknown backup kind '{kind}', expected one of: {', '.join(KINDS)}")

    def create_full(self, source: Union[str, Path]) -> BackupNode:
        """
        Create a level 0 backup in a new directory under the destination.

        The snapshot file does not exist yet when the archiver runs, which
        makes it archive everything and record the state it saw.
        """
        source_path = self._check_source(source)
        self.destination.mkdir(parents=True, exist_ok=True)
        directory = self.destination / f"{self._timestamp()}-full"
        logger.info(f"Creating full backup of '{source_path}' in '{directory}'")
        return self._archive(source_path, directory, level=0)

    def create_incremental(self, source: Union[str, Path], parent: str) -> BackupNode:
        """
        Create a backup of what changed since the parent backup.

        The new directory is nested inside the parent's and starts from a copy
        of the parent's snapshot, which the archiver then updates in place.

        Raises:
            ResolutionError: If the parent reference cannot be resolved
            NodeError: If the parent is not a valid backup
        """
        source_path = self._check_source(source)
        parent_node = resolve(parent, self.destination)
        level = parent_node.level + 1
        directory = parent_node.path / f"{self._timestamp()}-incremental"
        logger.info(f"Creating level {level} backup of '{source_path}' in '{directory}' on top of '{parent_node.path}'")
        return self._archive(source_path, directory, level=level, seed_snapshot=parent_node.snapshot_path)

    def _archive(self, source: Path, directory: Path, level: int,
                 seed_snapshot: Optional[Path] = None) -> BackupNode:
        directory.mkdir()
        snapshot_path = directory / encode_level(level)
        archive_path = directory / self.archive_name
        try:
            if seed_snapshot is not None:
                shutil.copy2(seed_snapshot, snapshot_path)
            self.archiver.create(source, archive_path, snapshot_path, self.compression)
            node = read_node(directory)
        except (ArchiverError, NodeError, OSError) as e:
            logger.error(f"Error creating backup in '{directory}': {str(e)}")
            shutil.rmtree(directory, ignore_errors=True)
            raise

        logger.info(f"Level {node.level} backup created at '{node.path}'")
        return node

    def list_backups(self) -> List[TreeEntry]:
        """
        List every directory of the destination that is, or tries to be, a backup.

        Returns:
            List[TreeEntry]: Entries in depth first, name sorted order. Invalid
                nodes are included with their error.

        Raises:
            DestinationUnreadable: If the destination cannot be read
        """
        entries = list(walk_tree(self.destination))
        invalid = sum(1 for entry in entries if not entry.valid)
        logger.debug(f"Found {len(entries)} backup directories, {invalid} invalid")
        return entries

    def resolve(self, reference: str) -> BackupNode:
        return resolve(reference, self.destination)

    def show(self, reference: str) -> Dict[str, Any]:
        """
        Describe one backup.

        Returns:
            Dict[str, Any]: Information including:
                - path, name, level, archive, snapshot, compression
                - size: Archive size in kilobytes
                - timestamp: Archive modification time, ISO format
                - chain: Directories restored, oldest first, or None if the
                  chain is broken
                - chain_error: Why the chain is broken, or None
        """
        node = self.resolve(reference)
        stat = node.archive_path.stat()
        info = {
            'path': node.path,
            'name': node.name,
            'level': node.level,
            'archive': node.archive_path,
            'snapshot': node.snapshot_path,
            'compression': compression_for_archive(node.archive_path.name),
            'size': int(stat.st_size / 1024),
            'timestamp': datetime.fromtimestamp(stat.st_mtime).isoformat(),
            'chain': None,
            'chain_error': None,
        }
        try:
            info['chain'] = [member.path for member in build_chain(node)]
        except BackupTreeError as e:
            info['chain_error'] = str(e)
        return info

    def restore(self, reference: str, target: Union[str, Path]) -> List[BackupNode]:
        """
        Restore a backup by replaying its whole chain into a target directory.

        Archives are extracted one at a time from level 0 up to the
        referenced backup, each on top of the previous one.

        Args:
            reference (str): Backup to restore
            target (Union[str, Path]): Directory to restore into, created if missing

        Returns:
            List[BackupNode]: The chain that was extracted

        Raises:
            ResolutionError: If the reference cannot be resolved
            BrokenChain: If the chain to level 0 is not intact
            ArchiverError: If an extraction fails; later levels are not applied
        """
        node = self.resolve(reference)
        chain = build_chain(node)

        target_path = Path(target).resolve()
        if target_path.exists() and not target_path.is_dir():
            raise ValueError(f"'{target}' exists but is not a directory")
        target_path.mkdir(parents=True, exist_ok=True)
        if not os.access(target_path, os.W_OK):
            raise PermissionError(f"No permission to write to directory '{target}'")

        logger.info(f"Restoring '{node.path}' ({len(chain)} archives) to '{target_path}'")
        for member in chain:
            logger.info(f"Extracting level {member.level} from '{member.archive_path}'")
            self.archiver.extract(member.archive_path, target_path,
                                  compression_for_archive(member.archive_path.name))
        logger.info(f"Restored '{node.path}' to '{target_path}'")
        return chain

    def remove(self, reference: str) -> Path:
        """
        Delete a backup together with every incremental backup nested inside it.

        This cannot be undone; callers are expected to ask first.

        Returns:
            Path: The directory that was deleted
        """
        node = self.resolve(reference)
        logger.info(f"Removing '{node.path}' and everything below it")
        shutil.rmtree(node.path)
        return node.path
