import os
import logging
from pathlib import Path
from typing import Union

from .errors import AmbiguousParent, ParentNotFound
from .nodes import BackupNode, read_node
from .tree import walk_tree


logger = logging.getLogger('backuptree')


def resolve(reference: str, destination: Union[str, Path]) -> BackupNode:
    """
    Turn a user supplied reference into exactly one backup.

    A reference naming an existing directory is read directly. References
    containing a path separator are also tried relative to the destination.
    Anything else is taken as the bare name of a backup directory and looked
    up across the whole destination.
    When the name matches several directories nothing is guessed.

    Args:
        reference (str): Path to a backup directory or its bare name
        destination (Union[str, Path]): Root of the backup tree

    Returns:
        BackupNode: The referenced backup

    Raises:
        NodeError: If the referenced directory is not a valid backup
        ParentNotFound: If no directory matches the name
        AmbiguousParent: If more than one directory matches the name
        DestinationUnreadable: If the destination cannot be walked
    """
    if not reference:
        raise ParentNotFound(reference)

    destination = Path(os.path.abspath(destination))
    candidates = [Path(reference)]
    # Only references that look like paths are tried below the destination,
    # a bare name must go through the name search
    if os.sep in reference or (os.altsep and os.altsep in reference):
        candidates.append(destination / reference)
    for candidate in candidates:
        if candidate.is_dir():
            candidate = Path(os.path.abspath(candidate))
            logger.debug(f"Resolved '{reference}' as path '{candidate}'")
            return read_node(candidate)

    matches = [entry for entry in walk_tree(destination) if entry.path.name == reference]
    if not matches:
        raise ParentNotFound(reference)
    if len(matches) > 1:
        raise AmbiguousParent(reference, [entry.path for entry in matches])

    match = matches[0]
    if match.error is not None:
        raise match.error
    logger.debug(f"Resolved '{reference}' by name to '{match.path}'")
    return match.node
