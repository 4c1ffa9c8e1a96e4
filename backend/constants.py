"""
Application-wide constants and configuration keys.

This module centralizes the magic strings and numbers used by the data store.
"""
from datetime import timedelta
from pathlib import Path


class EnvKeys:
    """Environment variables read by config.store_config"""
    DB_PATH = 'KEGPAD_DB_PATH'      # Explicit SQLite file
    DATA_DIR = 'KEGPAD_DATA_DIR'    # Directory holding kegpad.db
    SQL_ECHO = 'KEGPAD_SQL_ECHO'    # Log emitted SQL


DEFAULT_DATA_DIR = Path.home() / ".kegpad"
DEFAULT_DB_FILENAME = "kegpad.db"

# Trailing window used for the pour rate; rate is liters per this window
POUR_RATE_WINDOW = timedelta(hours=1)

# Readings included in a keg status summary
DEFAULT_TEMPERATURE_LIMIT = 20
