"""
Configuration for the data store.
"""

from .store_config import get_database_path, get_database_url, is_sql_echo_enabled

__all__ = ["get_database_path", "get_database_url", "is_sql_echo_enabled"]
