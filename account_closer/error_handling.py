"""
Error handling utilities for consistent error management and logging.

This module provides:
- The exception types used across a closure run
- Error codes grouped by category
- Standardized error logging with operation context
- Error categorization for unexpected per-record failures
"""

import logging
from typing import Optional, Dict, Any

from account_closer.config import ConfigError

logger = logging.getLogger(__name__)


class InputSourceError(Exception):
    """The account export cannot be read. Fatal: the run aborts before processing."""
    pass


class MalformedRecordError(ValueError):
    """
    A line of the account export does not have the expected shape.

    Per-record: the line is reported and the run continues.
    """

    def __init__(self, message: str, line_number: Optional[int] = None, raw_line: str = ""):
        super().__init__(message)
        self.line_number = line_number
        self.raw_line = raw_line


class ClosureError(Exception):
    """The closure command could not be built or started for an account."""
    pass


class ErrorCode:
    """Standard error codes for different error categories."""
    # Configuration errors (1xxx)
    CONFIG_MISSING = "E1001"
    CONFIG_INVALID = "E1002"

    # Input source errors (2xxx)
    INPUT_MISSING = "E2001"
    INPUT_READ_FAILED = "E2002"
    EXCLUSIONS_MISSING = "E2003"
    EXCLUSIONS_READ_FAILED = "E2004"

    # Closure errors (3xxx)
    CLOSURE_FAILED = "E3001"
    CLOSURE_COMMAND_INVALID = "E3002"

    # File system errors (4xxx)
    ACTION_LOG_WRITE_FAILED = "E4001"

    # Per-record processing errors (5xxx)
    RECORD_MALFORMED = "E5001"
    RECORD_PROCESSING_FAILED = "E5002"

    # Unknown errors (9xxx)
    UNKNOWN_ERROR = "E9001"


def log_error_with_context(
    error: Exception,
    error_code: str,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
    level: int = logging.ERROR,
    include_traceback: bool = True
) -> None:
    """
    Log an error with standardized context information.

    Args:
        error: The exception that occurred
        error_code: Standard error code from ErrorCode class
        operation: Description of the operation that failed
        context: Additional context dictionary (email, line number, path)
        level: Logging level (default: ERROR)
        include_traceback: Whether to include full traceback (default: True)

    Example:
        >>> try:
        ...     action.close(email)
        ... except ClosureError as e:
        ...     log_error_with_context(
        ...         e, ErrorCode.CLOSURE_COMMAND_INVALID,
        ...         "Closing account",
        ...         context={'email': email}
        ...     )
    """
    error_type = type(error).__name__

    context_str = ""
    if context:
        context_items = [f"{k}={v}" for k, v in context.items() if v is not None]
        if context_items:
            context_str = f" | Context: {', '.join(context_items)}"

    log_message = (
        f"[{error_code}] {operation} failed: {error_type}: {error}{context_str}"
    )

    if include_traceback:
        logger.log(level, log_message, exc_info=True)
    else:
        logger.log(level, log_message)


def categorize_error(error: Exception) -> tuple[str, str]:
    """
    Categorize an error and return appropriate error code and category.

    Example:
        >>> code, category = categorize_error(InputSourceError("missing"))
        >>> code
        'E2001'
    """
    if isinstance(error, ConfigError):
        return ErrorCode.CONFIG_INVALID, "Configuration"
    elif isinstance(error, InputSourceError):
        return ErrorCode.INPUT_MISSING, "Input"
    elif isinstance(error, MalformedRecordError):
        return ErrorCode.RECORD_MALFORMED, "Record"
    elif isinstance(error, ClosureError):
        return ErrorCode.CLOSURE_COMMAND_INVALID, "Closure"
    elif isinstance(error, OSError):
        return ErrorCode.ACTION_LOG_WRITE_FAILED, "File System"
    elif isinstance(error, (ValueError, TypeError, KeyError)):
        return ErrorCode.RECORD_PROCESSING_FAILED, "Processing"
    else:
        return ErrorCode.UNKNOWN_ERROR, "Unknown"
