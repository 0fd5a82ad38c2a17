"""
Boundary to the external archiver.

Backups are GNU tar archives written with ``--listed-incremental``: tar keeps
per-file change metadata in the snapshot file and only archives what changed
since the state recorded there. This module only builds command lines and
reports failures; the snapshot contents are opaque to backuptree.
"""

import os
import logging
import subprocess
from pathlib import Path
from typing import List, Union

from .errors import ArchiverError


logger = logging.getLogger('backuptree')

COMPRESSION_FLAGS = {
    "gzip": "--gzip",
    "bzip2": "--bzip2",
}


def compression_flag(compression: str) -> str:
    try:
        return COMPRESSION_FLAGS[compression]
    except KeyError:
        raise ValueError(f"Unknown compression '{compression}'") from None


class TarArchiver:
    """Runs GNU tar to create and extract incremental archives."""

    def __init__(self, tar_command: str = "tar"):
        self.tar_command = tar_command

    def create(self, source: Union[str, Path], archive_path: Union[str, Path],
               snapshot_path: Union[str, Path], compression: str) -> None:
        """
        Archive a source directory against a snapshot file.

        A missing snapshot file makes tar write a full (level 0) archive; an
        existing one makes it archive only what changed and update the file.

        Raises:
            ArchiverError: If tar exits with a nonzero status
        """
        self._run([
            "--create",
            f"--file={archive_path}",
            f"--listed-incremental={snapshot_path}",
            compression_flag(compression),
            f"--directory={source}",
            ".",
        ])

    def extract(self, archive_path: Union[str, Path], target: Union[str, Path], compression: str) -> None:
        """
        Extract one archive of a chain on top of the target directory.

        Raises:
            ArchiverError: If tar exits with a nonzero status
        """
        self._run([
            "--extract",
            f"--file={archive_path}",
            # tar ignores the file when extracting but needs the flag to replay deletions
            f"--listed-incremental={os.devnull}",
            compression_flag(compression),
            f"--directory={target}",
        ])

    def _run(self, arguments: List[str]) -> None:
        command = [self.tar_command] + arguments
        logger.debug(f"Running archiver: {' '.join(command)}")
        try:
            result = subprocess.run(command, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise ArchiverError(127, f"'{self.tar_command}' not found") from e
        if result.returncode != 0:
            message = result.stderr.strip() or result.stdout.strip()
            logger.error(f"Archiver exited with code {result.returncode}: {message}")
            raise ArchiverError(result.returncode, message)
