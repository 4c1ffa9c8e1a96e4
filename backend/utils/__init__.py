"""
Utility functions and decorators.
"""

from .logging_utils import StructuredLogger, log_operation
from .time_helper import utc_now

__all__ = ["StructuredLogger", "log_operation", "utc_now"]
