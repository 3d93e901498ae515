"""
Tests for the execution driver.
"""
import logging
from unittest.mock import Mock

from account_closer.account_source import read_account_entries
from account_closer.action_log import ActionLog
from account_closer.closure import ZmprovClosureAction
from account_closer.driver import ExecutionDriver
from account_closer.models import ExclusionSet

LINES = [
    "old@x.com;20200101000000Z;active;;20240101000000Z;Old",            # close by last_login
    "fresh@x.com;20200101000000Z;active;;20241215000000Z;Fresh",        # skip, recent login
    "gone@x.com;20200101000000Z;active;dismissed 15.12.2024;;Gone",     # close by notes
    "later@x.com;20200101000000Z;active;dismissed 01.02.2030;20200101000000Z;Later",  # ignore
    "vip@x.com;20200101000000Z;active;never_disable;20200101000000Z;VIP",             # skip
    "boss@x.com;20200101000000Z;active;;20200101000000Z;Boss",          # skip, excluded
    "closed@x.com;20200101000000Z;closed;;20200101000000Z;Closed",      # ignore
    "never@x.com;20200101000000Z;active;;;Never",                       # close by created
    "broken line without separators",                                   # malformed
]

EXCLUSIONS = ExclusionSet(emails=frozenset({"boss@x.com"}))


def build_driver(closure, log_path, clock, dry_run=False):
    return ExecutionDriver(
        closure_action=closure,
        action_log=ActionLog(log_path, dry_run=dry_run),
        clock=clock,
        exclusions=EXCLUSIONS,
        dry_run=dry_run,
    )


class TestExecutionDriver:
    """End-to-end behaviour of ExecutionDriver.run."""

    def test_closes_only_close_decisions_in_source_order(self, tmp_path, clock, write_accounts, fake_closure):
        driver = build_driver(fake_closure, tmp_path / "closed.log", clock)
        summary = driver.run(read_account_entries(write_accounts(LINES)))

        assert fake_closure.closed_emails == ["old@x.com", "gone@x.com", "never@x.com"]
        assert all(call['simulate'] is False for call in fake_closure.calls)
        assert summary.to_dict() == {
            "total": 9, "closed": 3, "failed": 0, "skipped": 3, "ignored": 2, "malformed": 1,
        }

    def test_action_log_lines(self, tmp_path, clock, write_accounts, fake_closure):
        log_path = tmp_path / "closed.log"
        build_driver(fake_closure, log_path, clock).run(read_account_entries(write_accounts(LINES)))

        assert log_path.read_text(encoding="utf-8").splitlines() == [
            "old@x.com inactive since 01.01.2024 (last_login)",
            "gone@x.com dismissal 15.12.2024",
            "never@x.com inactive since 01.01.2020 (created)",
        ]

    def test_dry_run_simulates_and_matches_apply_output(self, tmp_path, clock, write_accounts, make_fake_closure):
        accounts = write_accounts(LINES)

        apply_closure = make_fake_closure()
        apply_log = tmp_path / "apply.log"
        build_driver(apply_closure, apply_log, clock).run(read_account_entries(accounts))

        dry_closure = make_fake_closure()
        dry_log = tmp_path / "dry.log"
        dry_summary = build_driver(dry_closure, dry_log, clock, dry_run=True).run(read_account_entries(accounts))

        assert all(call['simulate'] is True for call in dry_closure.calls)
        assert dry_closure.closed_emails == apply_closure.closed_emails
        assert dry_summary.closed == 3

        dry_lines = dry_log.read_text(encoding="utf-8").splitlines()
        assert all(line.startswith("[DRY-RUN] ") for line in dry_lines)
        assert [line[len("[DRY-RUN] "):] for line in dry_lines] == apply_log.read_text(encoding="utf-8").splitlines()

    def test_failed_closure_does_not_stop_run(self, tmp_path, clock, write_accounts, make_fake_closure, caplog):
        closure = make_fake_closure(failing={"old@x.com"})
        log_path = tmp_path / "closed.log"

        with caplog.at_level(logging.INFO, logger="account_closer"):
            summary = build_driver(closure, log_path, clock).run(read_account_entries(write_accounts(LINES)))

        assert closure.closed_emails == ["old@x.com", "gone@x.com", "never@x.com"]
        assert summary.closed == 2
        assert summary.failed == 1
        assert log_path.read_text(encoding="utf-8").splitlines()[0] == (
            "[FAILED] old@x.com inactive since 01.01.2024 (last_login)"
        )
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert "E3001" in errors[0].getMessage()
        assert "old@x.com" in errors[0].getMessage()
        assert "account not found" in errors[0].getMessage()

    def test_exception_in_one_record_is_contained(self, tmp_path, clock, write_accounts, make_fake_closure, caplog):
        closure = make_fake_closure(raising={"gone@x.com"})

        with caplog.at_level(logging.ERROR, logger="account_closer"):
            summary = build_driver(closure, tmp_path / "closed.log", clock).run(
                read_account_entries(write_accounts(LINES))
            )

        assert closure.closed_emails == ["old@x.com", "gone@x.com", "never@x.com"]
        assert summary.closed == 2
        assert summary.failed == 1
        assert "directory unavailable for gone@x.com" in caplog.text

    def test_raising_closure_writes_failed_action_line(self, tmp_path, clock, write_accounts, make_fake_closure):
        log_path = tmp_path / "closed.log"
        closure = make_fake_closure(raising={"gone@x.com"})
        build_driver(closure, log_path, clock).run(read_account_entries(write_accounts(LINES)))

        assert log_path.read_text(encoding="utf-8").splitlines() == [
            "old@x.com inactive since 01.01.2024 (last_login)",
            "[FAILED] gone@x.com dismissal 15.12.2024",
            "never@x.com inactive since 01.01.2020 (created)",
        ]

    def test_unsafe_address_is_a_failed_closure(self, tmp_path, clock, write_accounts, caplog):
        runner = Mock()
        log_path = tmp_path / "closed.log"
        lines = ["two words@x.com;20200101000000Z;active;;20200101000000Z;Two"]

        with caplog.at_level(logging.ERROR, logger="account_closer"):
            summary = build_driver(ZmprovClosureAction(runner=runner), log_path, clock).run(
                read_account_entries(write_accounts(lines))
            )

        runner.assert_not_called()
        assert summary.failed == 1
        assert log_path.read_text(encoding="utf-8").splitlines() == [
            "[FAILED] two words@x.com inactive since 01.01.2020 (last_login)"
        ]
        assert "E3002" in caplog.text

    def test_far_future_notes_date_is_ignored(self, tmp_path, clock, write_accounts, fake_closure):
        lines = ["keep@x.com;20200101000000Z;active;keep until 31.12.9999;20200101000000Z;Keep"]
        summary = build_driver(fake_closure, tmp_path / "closed.log", clock).run(
            read_account_entries(write_accounts(lines))
        )

        assert fake_closure.calls == []
        assert summary.to_dict() == {
            "total": 1, "closed": 0, "failed": 0, "skipped": 0, "ignored": 1, "malformed": 0,
        }

    def test_diagnostic_line_for_every_decision(self, tmp_path, clock, write_accounts, fake_closure, caplog):
        with caplog.at_level(logging.INFO, logger="account_closer"):
            build_driver(fake_closure, tmp_path / "closed.log", clock).run(read_account_entries(write_accounts(LINES)))

        text = caplog.text
        assert "Closed (inactive by last_login (01.01.2024)): old@x.com" in text
        assert "Skip (active within window): fresh@x.com" in text
        assert "Closed (notes date reached (15.12.2024)): gone@x.com" in text
        assert "Ignore (future notes date (01.02.2030)): later@x.com" in text
        assert "Skip (never_disable): vip@x.com" in text
        assert "Skip (excluded): boss@x.com" in text
        assert "Ignore (status is not active (closed)): closed@x.com" in text
        assert "Closed (inactive by created (01.01.2020)): never@x.com" in text
        assert "E5001" in text

    def test_uses_one_clock_for_all_records(self, tmp_path, clock, write_accounts, fake_closure):
        """The driver never reads the wall clock; the injected clock decides."""
        lines = ["a@x.com;;active;dismissed 01.01.2025;;A", "b@x.com;;active;dismissed 02.01.2025;;B"]
        summary = build_driver(fake_closure, tmp_path / "closed.log", clock).run(
            read_account_entries(write_accounts(lines))
        )
        assert fake_closure.closed_emails == ["a@x.com"]
        assert summary.ignored == 1
