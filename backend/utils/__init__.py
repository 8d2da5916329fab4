"""
Utility functions and decorators.
"""

from .error_handlers import commit_or_rollback, handle_service_errors, translate_store_errors
from .logging_utils import StructuredLogger, configure_logging, log_operation

__all__ = [
    "commit_or_rollback",
    "handle_service_errors",
    "translate_store_errors",
    "StructuredLogger",
    "configure_logging",
    "log_operation",
]
