"""
Custom exception classes for the data store.

This module defines domain-specific exceptions so callers can tell malformed
input, missing records and storage faults apart.
"""


class ApplicationError(Exception):
    """Base exception for all application errors"""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ApplicationError):
    """Raised when there's a configuration issue"""

    def __init__(self, message: str, setting: str | None = None):
        details = {"setting": setting} if setting else {}
        super().__init__(message, details)


class ValidationError(ApplicationError):
    """Raised when validation fails"""

    def __init__(self, message: str, invalid_fields: dict | None = None):
        details = {"invalid_fields": invalid_fields} if invalid_fields else {}
        super().__init__(message, details)


class NotFoundError(ApplicationError):
    """Raised when a lookup that requires a match finds nothing"""

    def __init__(self, entity: str, key: str, message: str | None = None):
        details = {"entity": entity, "key": key}
        msg = message or f"{entity} not found: {key!r}"
        super().__init__(msg, details)


class StorageError(ApplicationError):
    """Raised when database operations fail"""

    def __init__(self, operation: str, message: str):
        details = {"operation": operation}
        super().__init__(f"{operation} failed: {message}", details)
