"""
Structured Logging Utilities

Adds structured context to log messages emitted by the data store.
"""

import inspect
import logging
from typing import Any, Dict, Optional
from contextvars import ContextVar
from functools import wraps

from exceptions import ValidationError, NotFoundError


# Context variable for operation-scoped logging context
_logging_context: ContextVar[Dict[str, Any]] = ContextVar('logging_context', default={})

# Argument name -> (context key, attribute read from the argument or None)
_CONTEXT_ARGS = {
    "keg": ("keg_id", "id"),
    "keg_id": ("keg_id", None),
    "beer": ("beer_id", "id"),
    "beer_id": ("beer_id", None),
    "user": ("rfid", "rfid"),
    "rfid": ("rfid", None),
    "position": ("position", None),
}


class StructuredLogger:
    """
    Wrapper around standard logger that adds structured context.

    Usage:
        logger = StructuredLogger(__name__)
        logger.info("Pour recorded", extra={
            "keg_id": keg.id,
            "rfid": user.rfid,
            "amount": 0.35
        })
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _add_context(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Merge the ContextVar context with the per-call extra dict."""
        context = _logging_context.get().copy()
        if extra:
            context.update(extra)
        return context

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self.logger.debug(message, extra=self._add_context(extra))

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self.logger.info(message, extra=self._add_context(extra))

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self.logger.warning(message, extra=self._add_context(extra))

    def error(self, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        self.logger.error(message, extra=self._add_context(extra), exc_info=exc_info)


def set_logging_context(**kwargs):
    """
    Set logging context for the current operation.

    This context will be included in all StructuredLogger messages
    within the current context.

    Example:
        set_logging_context(device="tap-1")
    """
    context = _logging_context.get().copy()
    context.update(kwargs)
    _logging_context.set(context)


def clear_logging_context():
    """Clear the logging context."""
    _logging_context.set({})


def _argument_context(signature: inspect.Signature, args, kwargs) -> Dict[str, Any]:
    """Pull identifiers out of a call's arguments, positional or keyword."""
    try:
        bound = signature.bind(*args, **kwargs)
    except TypeError:
        return {}

    context = {}
    for name, value in bound.arguments.items():
        if name not in _CONTEXT_ARGS or value is None:
            continue
        key, attribute = _CONTEXT_ARGS[name]
        context[key] = getattr(value, attribute, None) if attribute else value
    return context


def log_operation(operation_name: str):
    """
    Decorator logging a store operation's start, completion and failure.

    Validation and not-found failures are logged as warnings; anything
    else is logged as an error with the traceback. The exception is
    always re-raised.

    Args:
        operation_name: Name of the operation

    Example:
        @log_operation("add_keg_pour")
        def add_keg_pour(self, amount, keg, user=None):
            ...
    """
    def decorator(func):
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = StructuredLogger(func.__module__)

            context = {"operation": operation_name}
            context.update(_argument_context(signature, args, kwargs))

            logger.debug(f"Starting {operation_name}", extra=context)

            try:
                result = func(*args, **kwargs)
            except (ValidationError, NotFoundError) as e:
                context["error"] = e.message
                context["error_type"] = type(e).__name__
                logger.warning(f"Rejected {operation_name}: {e.message}", extra=context)
                raise
            except Exception as e:
                context["error"] = str(e)
                context["error_type"] = type(e).__name__
                logger.error(f"Failed {operation_name}", extra=context, exc_info=True)
                raise
            logger.info(f"Completed {operation_name}", extra=context)
            return result

        return wrapper

    return decorator
