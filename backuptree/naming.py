"""
Filenames that carry meaning inside a backup directory.

The incremental level of a backup lives only in the name of its snapshot file
(``level0.snapshot``, ``level1.snapshot``, ...). The archive name depends on
the compression the backup was created with.
"""

import re
from typing import Dict

from .errors import InvalidLevelFormat


SNAPSHOT_PREFIX = "level"
SNAPSHOT_SUFFIX = ".snapshot"

# Shape only; decode_level decides whether the level part is usable
SNAPSHOT_PATTERN = re.compile(r"^level(?P<level>.*)\.snapshot$")

ARCHIVE_NAMES: Dict[str, str] = {
    "gzip": "archive.tar.gz",
    "bzip2": "archive.tar.bz2",
}

COMPRESSIONS = tuple(ARCHIVE_NAMES)


def encode_level(level: int) -> str:
    """
    Build the canonical snapshot filename for an incremental level.

    Args:
        level (int): Incremental level, 0 for a full backup

    Returns:
        str: Snapshot filename such as ``level2.snapshot``

    Raises:
        ValueError: If the level is not a non-negative integer
    """
    if isinstance(level, bool) or not isinstance(level, int) or level < 0:
        raise ValueError(f"Invalid backup level: {level!r}")
    return f"{SNAPSHOT_PREFIX}{level}{SNAPSHOT_SUFFIX}"


def decode_level(filename: str) -> int:
    """
    Extract the incremental level from a snapshot filename.

    Args:
        filename (str): Snapshot filename, without directory

    Returns:
        int: The level encoded in the name

    Raises:
        InvalidLevelFormat: If the name does not carry a decimal level
    """
    match = SNAPSHOT_PATTERN.match(filename)
    if not match:
        raise InvalidLevelFormat(filename, "not a snapshot filename")
    level = match.group("level")
    if not level.isascii() or not level.isdigit():
        raise InvalidLevelFormat(filename, f"level '{level}' is not a non-negative integer")
    return int(level)


def is_snapshot_name(filename: str) -> bool:
    return SNAPSHOT_PATTERN.match(filename) is not None


def archive_name(compression: str) -> str:
    """Return the archive filename used for a compression selector."""
    try:
        return ARCHIVE_NAMES[compression]
    except KeyError:
        raise ValueError(
            f"Unknown compression '{compression}', expected one of: {', '.join(COMPRESSIONS)}"
        ) from None


def compression_for_archive(filename: str) -> str:
    """Return the compression selector an archive filename was written with."""
    for compression, name in ARCHIVE_NAMES.items():
        if name == filename:
            return compression
    raise ValueError(f"'{filename}' is not a backup archive name")
