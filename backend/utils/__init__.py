"""
Utility functions and decorators.
"""

from .error_handlers import translate_errors
from .logging_utils import StructuredLogger, log_operation

__all__ = ["translate_errors", "StructuredLogger", "log_operation"]
