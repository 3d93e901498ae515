"""
Logging Configuration Module

Sets up the diagnostic stream for a closure run. Every decision, warning
and error goes through the standard logging package under the
'account_closer' logger and ends up in the diagnostic log file (and on
stdout when console output is enabled).

Key Features:
    - One call at startup: init_logging()
    - Plain text or JSON lines
    - Run id, mode and current account on every line (ContextFilter)
    - Environment overrides: LOG_LEVEL, LOG_FORMAT, LOG_CONSOLE, LOG_FILE

Usage:
    >>> from account_closer.logging_config import init_logging
    >>>
    >>> init_logging(diagnostic_log='logs/debug.log', overrides={'level': 'DEBUG'})
    >>>
    >>> import logging
    >>> logger = logging.getLogger(__name__)
    >>> logger.info("This will include context automatically")
"""
import logging
import sys
import os
from pathlib import Path
from typing import Optional, Dict, Any, Union
import json
from datetime import datetime

ROOT_LOGGER_NAME = 'account_closer'

PLAIN_FORMAT = '[%(asctime)s] %(levelname)s [%(run_id)s] [%(account)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

DEFAULT_CONFIG = {
    'level': 'INFO',
    'format': 'plain',  # 'plain' or 'json'
    'console': True,
    'file': {
        'path': None,
        'truncate': True,
    },
}

ENV_VAR_MAPPING = {
    'LOG_LEVEL': 'level',
    'LOG_FORMAT': 'format',
    'LOG_CONSOLE': 'console',
    'LOG_FILE': ('file', 'path'),
}


class JSONFormatter(logging.Formatter):
    """Formats log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).strftime(DATE_FORMAT),
            'level': record.levelname,
            'message': record.getMessage(),
            'component': record.name.split('.')[-1],
        }

        for field in ('run_id', 'mode', 'account'):
            value = getattr(record, field, None)
            if value not in (None, '-'):
                log_data[field] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Adds run_id, mode and account from logging_context to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        from account_closer.logging_context import get_logging_context
        context = get_logging_context()

        record.run_id = context.get('run_id', '-')
        record.mode = context.get('mode', '-')
        record.account = context.get('account', '-')
        return True


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply LOG_* environment variables to a configuration dictionary."""
    config = _merge_config(config, {})

    for env_var, config_path in ENV_VAR_MAPPING.items():
        env_value = os.environ.get(env_var)
        if env_value is None:
            continue

        if isinstance(config_path, tuple):
            section, key = config_path
            config.setdefault(section, {})[key] = env_value
        elif config_path == 'level':
            config['level'] = env_value.upper()
        elif config_path == 'format':
            config['format'] = env_value.lower()
        elif config_path == 'console':
            config['console'] = env_value.lower() in ('true', '1', 'yes', 'on')

    return config


def _merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge configuration dictionaries without mutating either."""
    result = {key: (dict(value) if isinstance(value, dict) else value) for key, value in base.items()}

    for key, value in overrides.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_config(result[key], value)
        else:
            result[key] = value

    return result


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == 'json':
        return JSONFormatter()
    return logging.Formatter(fmt=PLAIN_FORMAT, datefmt=DATE_FORMAT)


def _setup_handlers(logger: logging.Logger, config: Dict[str, Any]) -> None:
    """Replace the handlers of the package logger according to config."""
    level = getattr(logging, str(config.get('level', 'INFO')).upper(), logging.INFO)
    formatter = _build_formatter(config.get('format', 'plain'))
    context_filter = ContextFilter()

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if config.get('console', True):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(context_filter)
        logger.addHandler(console_handler)

    file_config = config.get('file', {})
    file_path = file_config.get('path')
    if file_path:
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(
            str(file_path),
            mode='w' if file_config.get('truncate', True) else 'a',
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(context_filter)
        logger.addHandler(file_handler)


def init_logging(
    diagnostic_log: Optional[Union[str, Path]] = None,
    truncate: bool = True,
    overrides: Optional[Dict[str, Any]] = None
) -> logging.Logger:
    """
    Initialize the diagnostic stream.

    Args:
        diagnostic_log: Diagnostic log file; console only when omitted
        truncate: Empty the diagnostic log before writing
        overrides: Runtime overrides, e.g. {'level': 'DEBUG', 'console': False}

    Returns:
        The configured package logger

    Example:
        >>> init_logging('logs/zimbra_disable_debug.log', overrides={'level': 'DEBUG'})
    """
    config = _merge_config(DEFAULT_CONFIG, {'file': {'path': str(diagnostic_log) if diagnostic_log else None,
                                                     'truncate': truncate}})
    config = _apply_env_overrides(config)

    if overrides:
        config = _merge_config(config, overrides)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, str(config.get('level', 'INFO')).upper(), logging.INFO))
    root_logger.propagate = False

    _setup_handlers(root_logger, config)

    if root_logger.isEnabledFor(logging.DEBUG):
        root_logger.debug(
            f"Effective logging configuration: level={config.get('level')}, format={config.get('format')}, "
            f"file={config.get('file', {}).get('path')}"
        )

    return root_logger


def shutdown_logging() -> None:
    """Flush and close the package handlers (end of run, tests)."""
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root_logger.handlers):
        handler.flush()
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.propagate = True
