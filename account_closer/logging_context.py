"""
Logging Context Module

Stores contextual information (run id, run mode, current account) that is
included automatically in every diagnostic log line by the ContextFilter in
logging_config.py.

Usage:
    >>> from account_closer.logging_context import set_run_context, with_account_context
    >>>
    >>> set_run_context(run_id='a1b2c3d4', mode='DRY-RUN')
    >>> with with_account_context('user@example.com'):
    ...     logger.info("Decided")
    >>> # account is cleared after the block
"""
import contextvars
from typing import Dict, Any, Optional
from contextlib import contextmanager

_run_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar('run_id', default=None)
_mode: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar('mode', default=None)
_account: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar('account', default=None)


def get_logging_context() -> Dict[str, Any]:
    """
    Get the current logging context.

    Returns:
        Dictionary with the fields that are set: run_id, mode, account
    """
    context = {}
    for name, var in (('run_id', _run_id), ('mode', _mode), ('account', _account)):
        value = var.get()
        if value is not None:
            context[name] = value
    return context


def set_run_context(run_id: Optional[str] = None, mode: Optional[str] = None) -> None:
    """
    Set the run-wide fields.

    Args:
        run_id: Short identifier of this run
        mode: 'DRY-RUN' or 'APPLY'
    """
    if run_id is not None:
        _run_id.set(run_id)
    if mode is not None:
        _mode.set(mode)


def clear_context() -> None:
    """Clear all context fields (used between runs and in tests)."""
    _run_id.set(None)
    _mode.set(None)
    _account.set(None)


@contextmanager
def with_account_context(account: str):
    """
    Tag log lines with the account being processed.

    Example:
        >>> with with_account_context('user@example.com'):
        ...     logger.info("Skip (excluded)")
    """
    token = _account.set(account)
    try:
        yield
    finally:
        _account.reset(token)
