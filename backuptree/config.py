import os
import logging
import configparser
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .errors import BackupTreeError
from .naming import COMPRESSIONS


logger = logging.getLogger('backuptree')

SECTION = "backup"

DEFAULTS: Dict[str, Optional[str]] = {
    "source": None,
    "destination": "backups",
    "compression": "gzip",
    "parent": None,
    "restore_target": None,
}


class ConfigError(BackupTreeError):
    """The configuration file cannot be used."""


def default_config_path() -> Path:
    """Return ``$XDG_CONFIG_HOME/backuptree/config.ini``, falling back to ``~/.config``."""
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "backuptree" / "config.ini"


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Optional[str]]:
    """
    Load settings from an INI file on top of the built-in defaults.

    Only the ``[backup]`` section is read. A missing file is not an error
    and yields the defaults.

    Args:
        path (Optional[Union[str, Path]]): Config file. Defaults to default_config_path().

    Returns:
        Dict[str, Optional[str]]: One value per key in DEFAULTS

    Raises:
        ConfigError: If the file cannot be parsed or holds an invalid value
    """
    settings = dict(DEFAULTS)
    path = Path(path) if path else default_config_path()
    if not path.is_file():
        logger.debug(f"No config file at '{path}', using defaults")
        return settings

    parser = configparser.ConfigParser()
    try:
        parser.read(path)
    except configparser.Error as e:
        raise ConfigError(f"Cannot parse config file '{path}': {e}") from e

    if parser.has_section(SECTION):
        for key, value in parser.items(SECTION):
            if key not in DEFAULTS:
                logger.warning(f"Ignoring unknown config key '{key}' in '{path}'")
                continue
            settings[key] = value.strip() or None

    if settings["compression"] not in COMPRESSIONS:
        raise ConfigError(
            f"Invalid compression '{settings['compression']}' in '{path}', "
            f"expected one of: {', '.join(COMPRESSIONS)}"
        )
    logger.info(f"Loaded config from '{path}'")
    return settings


def merge_overrides(settings: Dict[str, Optional[str]], overrides: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Return settings with every non-None override applied on top."""
    merged = dict(settings)
    for key, value in overrides.items():
        if key in merged and value is not None:
            merged[key] = value
    return merged
