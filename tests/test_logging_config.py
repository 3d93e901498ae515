"""
Tests for the diagnostic logging setup.
"""
import json
import logging
import re
import pytest

from account_closer.logging_config import (
    ROOT_LOGGER_NAME,
    _merge_config,
    init_logging,
    shutdown_logging,
)
from account_closer.logging_context import (
    clear_context,
    get_logging_context,
    set_run_context,
    with_account_context,
)

PLAIN_LINE = re.compile(r'^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] INFO \[abc12345\] \[user@x\.com\] decided$')


@pytest.fixture(autouse=True)
def no_log_env(monkeypatch):
    for name in ("LOG_LEVEL", "LOG_FORMAT", "LOG_CONSOLE", "LOG_FILE"):
        monkeypatch.delenv(name, raising=False)


class TestLoggingContext:
    """Tests for the contextvars-backed logging context."""

    def test_run_and_account_context(self):
        set_run_context(run_id="abc12345", mode="DRY-RUN")
        with with_account_context("user@x.com"):
            assert get_logging_context() == {'run_id': 'abc12345', 'mode': 'DRY-RUN', 'account': 'user@x.com'}
        assert 'account' not in get_logging_context()

        clear_context()
        assert get_logging_context() == {}


class TestInitLogging:
    """Tests for init_logging."""

    def test_plain_file_format(self, tmp_path):
        log_file = tmp_path / "logs" / "debug.log"
        init_logging(diagnostic_log=log_file, overrides={'console': False})
        set_run_context(run_id="abc12345", mode="APPLY")

        with with_account_context("user@x.com"):
            logging.getLogger("account_closer.driver").info("decided")
        shutdown_logging()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        assert PLAIN_LINE.match(lines[0])

    def test_missing_context_is_dash(self, tmp_path):
        log_file = tmp_path / "debug.log"
        init_logging(diagnostic_log=log_file, overrides={'console': False})
        logging.getLogger("account_closer.job").warning("no context yet")
        shutdown_logging()

        assert "WARNING [-] [-] no context yet" in log_file.read_text(encoding="utf-8")

    def test_json_format(self, tmp_path):
        log_file = tmp_path / "debug.log"
        init_logging(diagnostic_log=log_file, overrides={'console': False, 'format': 'json'})
        set_run_context(run_id="abc12345", mode="DRY-RUN")
        with with_account_context("Иванов@x.ru"):
            logging.getLogger("account_closer.driver").info("Skip (excluded)")
        shutdown_logging()

        entry = json.loads(log_file.read_text(encoding="utf-8").splitlines()[0])
        assert entry['level'] == 'INFO'
        assert entry['message'] == 'Skip (excluded)'
        assert entry['component'] == 'driver'
        assert entry['run_id'] == 'abc12345'
        assert entry['mode'] == 'DRY-RUN'
        assert entry['account'] == 'Иванов@x.ru'

    def test_level_filters_debug(self, tmp_path):
        log_file = tmp_path / "debug.log"
        init_logging(diagnostic_log=log_file, overrides={'console': False, 'level': 'INFO'})
        logger = logging.getLogger("account_closer.driver")
        logger.debug("hidden")
        logger.info("shown")
        shutdown_logging()

        text = log_file.read_text(encoding="utf-8")
        assert "hidden" not in text
        assert "shown" in text

    def test_truncate_and_append(self, tmp_path):
        log_file = tmp_path / "debug.log"
        log_file.write_text("previous run\n", encoding="utf-8")

        init_logging(diagnostic_log=log_file, truncate=False, overrides={'console': False})
        logging.getLogger("account_closer").info("second run")
        shutdown_logging()
        assert log_file.read_text(encoding="utf-8").startswith("previous run\n")

        init_logging(diagnostic_log=log_file, truncate=True, overrides={'console': False})
        logging.getLogger("account_closer").info("third run")
        shutdown_logging()
        text = log_file.read_text(encoding="utf-8")
        assert "previous run" not in text
        assert "third run" in text

    def test_env_overrides(self, tmp_path, monkeypatch):
        env_file = tmp_path / "from_env.log"
        monkeypatch.setenv("LOG_FILE", str(env_file))
        monkeypatch.setenv("LOG_FORMAT", "JSON")
        monkeypatch.setenv("LOG_CONSOLE", "no")

        logger = init_logging()
        assert len(logger.handlers) == 1
        logging.getLogger("account_closer").info("via env")
        shutdown_logging()

        assert json.loads(env_file.read_text(encoding="utf-8").splitlines()[0])['message'] == "via env"

    def test_console_handler(self, capsys):
        init_logging(overrides={'console': True})
        logging.getLogger("account_closer").info("to stdout")
        shutdown_logging()

        assert "to stdout" in capsys.readouterr().out

    def test_reinit_replaces_handlers(self, tmp_path):
        init_logging(diagnostic_log=tmp_path / "a.log", overrides={'console': False})
        logger = init_logging(diagnostic_log=tmp_path / "b.log", overrides={'console': False})
        assert len(logger.handlers) == 1
        assert logger.name == ROOT_LOGGER_NAME


class TestMergeConfig:
    """Tests for _merge_config."""

    def test_deep_merge_does_not_mutate(self):
        base = {'level': 'INFO', 'file': {'path': None, 'truncate': True}}
        merged = _merge_config(base, {'file': {'path': 'x.log'}})
        assert merged == {'level': 'INFO', 'file': {'path': 'x.log', 'truncate': True}}
        assert base['file']['path'] is None
