"""
Storage Configuration

Resolves where the SQLite database lives and how the engine is created.
Controlled by environment variables, read at call time so tests can
override them.

Resolution order for the database file:
- KEGPAD_DB_PATH: explicit file path
- KEGPAD_DATA_DIR: directory, file name is kegpad.db
- ~/.kegpad/kegpad.db
"""
import os
import logging
from pathlib import Path

from constants import EnvKeys, DEFAULT_DATA_DIR, DEFAULT_DB_FILENAME
from exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def get_database_path(create_parent: bool = True) -> Path:
    """
    Get the path of the SQLite database file.

    Args:
        create_parent: Create the containing directory if it is missing

    Returns:
        Path to the database file

    Raises:
        ConfigurationError: If the configured path points at a directory
    """
    explicit = os.environ.get(EnvKeys.DB_PATH, '').strip()
    if explicit:
        path = Path(explicit).expanduser()
        if path.is_dir():
            raise ConfigurationError(
                f"{EnvKeys.DB_PATH} points at a directory: {path}",
                setting=EnvKeys.DB_PATH,
            )
    else:
        data_dir = os.environ.get(EnvKeys.DATA_DIR, '').strip()
        base = Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR
        path = base / DEFAULT_DB_FILENAME

    if create_parent:
        path.parent.mkdir(parents=True, exist_ok=True)
    return path


def get_database_url() -> str:
    """SQLAlchemy URL for the configured database file."""
    path = get_database_path()
    logger.debug(f"Using database at {path}")
    return f"sqlite:///{path}"


def is_sql_echo_enabled() -> bool:
    """
    Check if SQL statement logging is enabled.

    Returns:
        True if KEGPAD_SQL_ECHO is set to 'true', '1' or 'yes' (case-insensitive)
    """
    return os.environ.get(EnvKeys.SQL_ECHO, 'false').lower() in ('true', '1', 'yes')
