from pathlib import Path
from typing import List, Optional, Union


class BackupTreeError(Exception):
    """Base class for every error raised by backuptree."""


class DestinationUnreadable(BackupTreeError):
    """The backup destination itself cannot be read, nothing can be done."""

    def __init__(self, destination: Union[str, Path], reason: str):
        self.destination = Path(destination)
        self.reason = reason
        super().__init__(f"Destination '{destination}' is unreadable: {reason}")


class NodeError(BackupTreeError):
    """
    A directory is not a valid backup node.

    Node errors are recoverable: the tree walker reports them inline and keeps
    going.
    """

    reason = "invalid backup node"

    def __init__(self, path: Union[str, Path], detail: Optional[str] = None):
        self.path = Path(path)
        self.detail = detail
        message = f"{self.reason}: '{self.path}'"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class NoArchiveFound(NodeError):
    reason = "no archive found"


class AmbiguousArchive(NodeError):
    reason = "ambiguous archive"


class NoSnapshotFound(NodeError):
    reason = "no snapshot found"


class AmbiguousSnapshot(NodeError):
    reason = "ambiguous snapshot"


class InvalidLevelFormat(NodeError):
    reason = "invalid level format"


class NodeUnreadable(NodeError):
    reason = "unreadable directory"


class ResolutionError(BackupTreeError):
    """A backup reference could not be turned into exactly one backup."""


class ParentNotFound(ResolutionError):

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"No backup matches '{reference}'")


class AmbiguousParent(ResolutionError):

    def __init__(self, reference: str, candidates: List[Path]):
        self.reference = reference
        self.candidates = list(candidates)
        listing = "\n".join(f"  {candidate}" for candidate in self.candidates)
        super().__init__(
            f"'{reference}' matches {len(self.candidates)} backups, "
            f"use a path instead:\n{listing}"
        )


class ChainError(BackupTreeError):
    """The incremental chain leading to a backup is not intact."""


class BrokenChain(ChainError):

    def __init__(self, expected_level: int, actual_level: Optional[int], directory: Union[str, Path]):
        self.expected_level = expected_level
        self.actual_level = actual_level
        self.directory = Path(directory)
        found = "no valid backup" if actual_level is None else f"level {actual_level}"
        super().__init__(
            f"Broken backup chain at '{self.directory}': "
            f"expected level {expected_level}, found {found}"
        )


class ArchiverError(BackupTreeError):
    """The external archiver exited with a nonzero status."""

    def __init__(self, returncode: int, message: str):
        self.returncode = returncode
        self.message = message
        super().__init__(f"Archiver failed with exit code {returncode}: {message}")
