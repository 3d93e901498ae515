"""
Test fixtures and helpers for account closer tests.

This module provides:
- A fixed run clock (2025-01-01 12:00 UTC, cutoff 2024-07-01)
- Account record and exclusion set factories
- Sample export / exclusion files in tmp_path
- A configuration dict pointing every path into tmp_path
- A fake closure action
- Logging cleanup between tests
"""
import pytest
from datetime import datetime, timezone
from typing import Dict, List, Optional

from account_closer.closure import ClosureAction, ClosureResult
from account_closer.logging_config import shutdown_logging
from account_closer.logging_context import clear_context
from account_closer.models import AccountRecord, ExclusionSet, RunClock


RUN_NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

ACCOUNTS_HEADER = "Email;Created;Status;Notes;LastLogin;DisplayName"


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers and context installed by init_logging."""
    yield
    shutdown_logging()
    clear_context()


@pytest.fixture
def run_now():
    return RUN_NOW


@pytest.fixture
def clock():
    """Run clock used by most decision tests."""
    return RunClock.capture(now=RUN_NOW, inactivity_months=6)


@pytest.fixture
def no_exclusions():
    return ExclusionSet()


@pytest.fixture
def make_record():
    """Factory for active account records with sensible defaults."""
    def _make(
        email: str = "user@example.com",
        created: str = "",
        status: str = "active",
        notes: str = "",
        last_login: str = "",
        display_name: str = "User",
    ) -> AccountRecord:
        return AccountRecord(
            email=email,
            created=created,
            status=status,
            notes=notes,
            last_login=last_login,
            display_name=display_name,
        )
    return _make


@pytest.fixture
def write_accounts(tmp_path):
    """Write an account export with header; returns its path."""
    def _write(lines: List[str], name: str = "accounts.csv", header: str = ACCOUNTS_HEADER):
        path = tmp_path / name
        path.write_text("\n".join([header] + lines) + "\n", encoding="utf-8")
        return path
    return _write


@pytest.fixture
def write_exclusions(tmp_path):
    """Write an exclusion file with header; returns its path."""
    def _write(lines: List[str], name: str = "exclusions.txt", header: str = "Actual emails"):
        path = tmp_path / name
        path.write_text("\n".join([header] + lines) + "\n", encoding="utf-8")
        return path
    return _write


@pytest.fixture
def config_dict(tmp_path):
    """Configuration dictionary with all files under tmp_path."""
    logs = tmp_path / "logs"
    return {
        'paths': {
            'accounts_file': str(tmp_path / "accounts.csv"),
            'exclusions_file': str(tmp_path / "exclusions.txt"),
            'action_log': str(logs / "closed.log"),
            'dry_run_action_log': str(logs / "closed.dryrun.log"),
            'diagnostic_log': str(logs / "debug.log"),
        },
        'logging': {
            'level': 'DEBUG',
            'console': False,
        },
    }


class FakeClosureAction(ClosureAction):
    """
    Records every call; fails for addresses in `failing`, raises for
    addresses in `raising`.
    """

    def __init__(self, failing: Optional[set] = None, raising: Optional[set] = None):
        self.failing = failing or set()
        self.raising = raising or set()
        self.calls: List[Dict] = []

    def close(self, email: str, simulate: bool = False) -> ClosureResult:
        self.calls.append({'email': email, 'simulate': simulate})
        if email in self.raising:
            raise RuntimeError(f"directory unavailable for {email}")
        if simulate:
            return ClosureResult(success=True, detail="simulated", simulated=True)
        if email in self.failing:
            return ClosureResult(success=False, detail="exit status 1: account not found")
        return ClosureResult(success=True, detail="closed")

    @property
    def closed_emails(self) -> List[str]:
        return [call['email'] for call in self.calls]


@pytest.fixture
def fake_closure():
    return FakeClosureAction()


@pytest.fixture
def make_fake_closure():
    """Factory for fake closure actions with failing/raising addresses."""
    def _make(failing: Optional[set] = None, raising: Optional[set] = None) -> FakeClosureAction:
        return FakeClosureAction(failing=failing, raising=raising)
    return _make
