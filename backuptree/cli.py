import argparse
import sys
import logging
from datetime import datetime
from typing import Dict, NoReturn, Optional

from .config import ConfigError, load_config, merge_overrides
from .errors import ArchiverError, BackupTreeError, DestinationUnreadable
from .naming import COMPRESSIONS
from .operations import BackupOperations

# Configure logging to write to file only, not stdout
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    filename='backuptree.log',
    filemode='a'
)
logger = logging.getLogger('backuptree')


def format_timestamp(timestamp: str) -> str:
    """
    Convert ISO format timestamp to a more readable format.

    Args:
        timestamp (str): ISO format timestamp string

    Returns:
        str: Human-readable timestamp in format YYYY-MM-DD HH:MM:SS
    """
    dt = datetime.fromisoformat(timestamp)
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def print_error_and_exit(error_message: str, exit_code: int = 1) -> NoReturn:
    """
    Print an error message and exit the program with the specified exit code.

    Args:
        error_message (str): The error message to display
        exit_code (int, optional): The exit code to use. Defaults to 1.
    """
    logger.error(error_message)
    print(f"Error: {error_message}", file=sys.stderr)
    sys.exit(exit_code)


def confirm(question: str, assume_yes: bool = False) -> bool:
    """Ask a yes/no question on stdin; anything but y/yes counts as no."""
    if assume_yes:
        return True
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def require(settings: Dict[str, Optional[str]], key: str, option: str) -> str:
    value = settings.get(key)
    if not value:
        print_error_and_exit(f"No {key.replace('_', ' ')} given, use {option} or set '{key}' in the config file")
    return value


def _operations(settings: Dict[str, Optional[str]]) -> BackupOperations:
    return BackupOperations(
        destination=require(settings, "destination", "--destination"),
        compression=settings["compression"],
    )


def full_command(settings: Dict[str, Optional[str]], args: argparse.Namespace) -> None:
    """
    Execute the full command to create a level 0 backup.

    Args:
        settings: Merged configuration providing source and destination
        args (argparse.Namespace): Command line arguments
    """
    try:
        logger.info("Starting full backup")
        source = require(settings, "source", "--source")
        node = _operations(settings).create("full", source)
        print(f"Full backup created at {node.path}")
    except ArchiverError as e:
        print_error_and_exit(f"Archiver failed (exit code {e.returncode}): {e.message}")
    except (BackupTreeError, ValueError) as e:
        print_error_and_exit(str(e))
    except PermissionError as e:
        print_error_and_exit(f"Permission denied: {str(e)}")
    except OSError as e:
        print_error_and_exit(f"OS error: {str(e)}")


def incremental_command(settings: Dict[str, Optional[str]], args: argparse.Namespace) -> None:
    """
    Execute the incremental command to back up changes since a parent backup.

    Args:
        settings: Merged configuration providing source, destination and parent
        args (argparse.Namespace): Command line arguments
    """
    try:
        logger.info("Starting incremental backup")
        source = require(settings, "source", "--source")
        parent = require(settings, "parent", "--parent")
        node = _operations(settings).create("incremental", source, parent=parent)
        print(f"Level {node.level} backup created at {node.path}")
    except ArchiverError as e:
        print_error_and_exit(f"Archiver failed (exit code {e.returncode}): {e.message}")
    except (BackupTreeError, ValueError) as e:
        print_error_and_exit(str(e))
    except PermissionError as e:
        print_error_and_exit(f"Permission denied: {str(e)}")
    except OSError as e:
        print_error_and_exit(f"OS error: {str(e)}")


def list_command(settings: Dict[str, Optional[str]], args: argparse.Namespace) -> None:
    """
    Execute the list command to display the backup tree, indented by nesting.

    Invalid backups are shown inline with the reason they are invalid.
    """
    try:
        logger.info("Listing backups")
        entries = _operations(settings).list_backups()

        if not entries:
            print("No backups found.")
            return

        print(f"{'LEVEL':<7}BACKUP")
        for entry in entries:
            indent = "  " * entry.depth
            if entry.valid:
                print(f"{entry.node.level:<7}{indent}{entry.path.name}")
            else:
                print(f"{'!':<7}{indent}{entry.path.name}  [invalid: {entry.error.reason}]")
    except DestinationUnreadable as e:
        print_error_and_exit(str(e))
    except BackupTreeError as e:
        print_error_and_exit(f"Error listing backups: {str(e)}")


def show_command(settings: Dict[str, Optional[str]], args: argparse.Namespace) -> None:
    """Execute the show command to describe a single backup."""
    try:
        logger.info(f"Showing backup '{args.backup}'")
        info = _operations(settings).show(args.backup)
        print(f"Path:        {info['path']}")
        print(f"Level:       {info['level']}")
        print(f"Archive:     {info['archive']}")
        print(f"Snapshot:    {info['snapshot']}")
        print(f"Compression: {info['compression']}")
        print(f"Size:        {info['size']} KB")
        print(f"Created:     {format_timestamp(info['timestamp'])}")
        if info['chain'] is not None:
            print("Chain:")
            for level, path in enumerate(info['chain']):
                print(f"  {level}  {path}")
        else:
            print(f"Chain:       BROKEN ({info['chain_error']})")
    except BackupTreeError as e:
        print_error_and_exit(str(e))
    except OSError as e:
        print_error_and_exit(f"OS error: {str(e)}")


def restore_command(settings: Dict[str, Optional[str]], args: argparse.Namespace) -> None:
    """Execute the restore command to replay a backup chain into a directory."""
    try:
        target = require(settings, "restore_target", "--target")
        if not confirm(f"Restore '{args.backup}' into '{target}'?", args.yes):
            print("Restore cancelled.")
            return
        logger.info("Starting restore operation")
        chain = _operations(settings).restore(args.backup, target)
        print(f"Backup {chain[-1].path} restored to {target} ({len(chain)} archives)")
    except ArchiverError as e:
        print_error_and_exit(f"Archiver failed (exit code {e.returncode}): {e.message}")
    except (BackupTreeError, ValueError) as e:
        print_error_and_exit(str(e))
    except PermissionError as e:
        print_error_and_exit(f"Permission denied: {str(e)}")
    except OSError as e:
        print_error_and_exit(f"OS error: {str(e)}")


def remove_command(settings: Dict[str, Optional[str]], args: argparse.Namespace) -> None:
    """Execute the remove command to delete a backup and its incremental children."""
    try:
        ops = _operations(settings)
        node = ops.resolve(args.backup)
        if not confirm(f"Delete '{node.path}' and every backup inside it?", args.yes):
            print("Remove cancelled.")
            return
        removed = ops.remove(str(node.path))
        logger.info(f"Backup '{removed}' removed")
        print(f"Backup {removed} removed.")
    except BackupTreeError as e:
        print_error_and_exit(str(e))
    except PermissionError as e:
        print_error_and_exit(f"Permission denied: {str(e)}")
    except OSError as e:
        print_error_and_exit(f"OS error: {str(e)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Incremental tar backups organised as a directory tree",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    # Options shared by all commands; None means "take it from the config file"
    parser.add_argument("--config", help="Path to the config file (default: $XDG_CONFIG_HOME/backuptree/config.ini)")
    parser.add_argument("--destination", help="Directory holding the backup tree")
    parser.add_argument("--compression", choices=COMPRESSIONS, help="Compression for new backups")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    full_parser = subparsers.add_parser("full", help="Create a full backup")
    full_parser.add_argument("--source", help="Directory to back up")

    incremental_parser = subparsers.add_parser("incremental", help="Create an incremental backup on top of another one")
    incremental_parser.add_argument("--source", help="Directory to back up")
    incremental_parser.add_argument("--parent", help="Path or name of the parent backup")

    subparsers.add_parser("list", help="List all backups as a tree")

    show_parser = subparsers.add_parser("show", help="Show details of one backup")
    show_parser.add_argument("backup", help="Path or name of the backup")

    restore_parser = subparsers.add_parser("restore", help="Restore a backup and everything it builds on")
    restore_parser.add_argument("backup", help="Path or name of the backup")
    restore_parser.add_argument("--target", dest="restore_target", help="Directory to restore to (will be created if it doesn't exist)")
    restore_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    remove_parser = subparsers.add_parser("remove", help="Delete a backup and its incremental backups")
    remove_parser.add_argument("backup", help="Path or name of the backup")
    remove_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    return parser


def main() -> None:
    """
    Main entry point for the backup tool command line interface.
    Parses arguments, merges them over the config file and dispatches to
    the appropriate command handler.
    """
    parser = build_parser()
    args = parser.parse_args()

    command_handlers = {
        "full": full_command,
        "incremental": incremental_command,
        "list": list_command,
        "show": show_command,
        "restore": restore_command,
        "remove": remove_command,
    }

    if args.command not in command_handlers:
        parser.print_help()
        sys.exit(1)

    try:
        settings = load_config(args.config)
    except ConfigError as e:
        print_error_and_exit(str(e))
    settings = merge_overrides(settings, vars(args))

    command_handlers[args.command](settings, args)


if __name__ == "__main__":
    main()
