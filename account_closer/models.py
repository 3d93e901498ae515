"""
Data models for the account closure run.

Integration Pattern:
    Values flow through one run like this:

    1. RunClock.capture() fixes "now" and the inactivity cutoff once.
    2. load_exclusions() builds an ExclusionSet.
    3. read_account_entries() yields AccountRecord objects.
    4. decide(record, clock, exclusions) returns a Decision.
    5. ExecutionDriver closes accounts for Close decisions and tallies a RunSummary.

    Example:
        >>> clock = RunClock.capture()
        >>> decision = decide(record, clock, exclusions)
        >>> if decision.is_close:
        ...     closure_action.close(record.normalized_email)
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, FrozenSet


ACTIVE_STATUS = "active"


@dataclass(frozen=True)
class AccountRecord:
    """
    One row of the account export.

    Fields keep the text exactly as read (minus surrounding whitespace);
    timestamps are parsed by the decision engine, not here.

    Fields:
        email: Account address (unique key, compared case-insensitively)
        created: Directory creation timestamp (YYYYMMDDhhmmss[.fff]Z) or empty
        status: Directory status (only 'active' accounts are candidates)
        notes: Free text maintained by administrators
        last_login: Directory last-login timestamp or empty
        display_name: Human readable account name
        line_number: 1-based line in the source file, for diagnostics
    """
    email: str
    created: str = ""
    status: str = ""
    notes: str = ""
    last_login: str = ""
    display_name: str = ""
    line_number: Optional[int] = field(default=None, compare=False)

    @property
    def normalized_email(self) -> str:
        """Trimmed, lower-cased address used for lookups."""
        return self.email.strip().lower()

    def is_active(self, active_status: str = ACTIVE_STATUS) -> bool:
        return self.status.strip() == active_status


@dataclass(frozen=True)
class ExclusionSet:
    """
    Normalized addresses that must never be closed.

    Membership checks normalize the candidate address, so callers may pass raw addresses.
    """
    emails: FrozenSet[str] = frozenset()
    source: Optional[str] = None
    source_found: bool = True

    def __contains__(self, email: object) -> bool:
        if not isinstance(email, str):
            return False
        return email.strip().lower() in self.emails

    def __len__(self) -> int:
        return len(self.emails)

    @classmethod
    def empty(cls, source: Optional[str] = None) -> 'ExclusionSet':
        return cls(emails=frozenset(), source=source, source_found=False)


@dataclass(frozen=True)
class EmbeddedDate:
    """A day/month/year triple found inside the notes field."""
    day: int
    month: int
    year: int
    raw: str = ""

    def to_date(self) -> date:
        """
        Calendar date for this triple.

        Raises:
            ValueError: If the triple is not a real date (e.g. 31.02.2024)
        """
        return date(self.year, self.month, self.day)

    def pretty(self) -> str:
        """DD.MM.YYYY rendering, valid or not."""
        return f"{self.day:02d}.{self.month:02d}.{self.year:04d}"


class DecisionKind(Enum):
    """
    Verdict for one account.

    Values:
        CLOSE: Set the account status to closed
        SKIP: Candidate, but protected or not inactive long enough
        IGNORE: Not a candidate in this run at all
    """
    CLOSE = "close"
    SKIP = "skip"
    IGNORE = "ignore"


class DecisionReason(Enum):
    """Why a decision was taken; values are the diagnostic log wording."""
    NOT_ACTIVE = "status is not active"
    MISSING_EMAIL = "missing email"
    EXCLUDED = "excluded"
    NEVER_DISABLE = "never_disable"
    FUTURE_NOTES_DATE = "future notes date"
    INVALID_NOTES_DATE = "invalid notes date"
    NOTES_DATE_REACHED = "notes date reached"
    INACTIVE_BY_LAST_LOGIN = "inactive by last_login"
    ACTIVE_WITHIN_WINDOW = "active within window"
    UNPARSABLE_LAST_LOGIN = "unparsable last_login"
    INACTIVE_BY_CREATED = "inactive by created"
    NO_QUALIFYING_SIGNAL = "no qualifying signal"


class EvidenceBasis(Enum):
    """Field a Close decision is based on."""
    NOTES = "notes"
    LAST_LOGIN = "last_login"
    CREATED = "created"


@dataclass(frozen=True)
class Decision:
    """
    Outcome of the decision engine for one account.

    Use the close/skip/ignore constructors; only Close decisions carry
    evidence.
    """
    kind: DecisionKind
    reason: DecisionReason
    evidence_date: Optional[date] = None
    basis: Optional[EvidenceBasis] = None
    detail: str = ""

    @classmethod
    def close(cls, reason: DecisionReason, evidence_date: date, basis: EvidenceBasis) -> 'Decision':
        return cls(DecisionKind.CLOSE, reason, evidence_date=evidence_date, basis=basis)

    @classmethod
    def skip(cls, reason: DecisionReason, detail: str = "") -> 'Decision':
        return cls(DecisionKind.SKIP, reason, detail=detail)

    @classmethod
    def ignore(cls, reason: DecisionReason, detail: str = "") -> 'Decision':
        return cls(DecisionKind.IGNORE, reason, detail=detail)

    @property
    def is_close(self) -> bool:
        return self.kind is DecisionKind.CLOSE

    def describe(self) -> str:
        """Short text for the diagnostic log."""
        text = self.reason.value
        if self.evidence_date is not None:
            text += f" ({self.evidence_date.strftime('%d.%m.%Y')})"
        elif self.detail:
            text += f" ({self.detail})"
        return text


@dataclass(frozen=True)
class RunClock:
    """
    The single "now" of a run and the instants derived from it.

    Fields:
        now: Timezone-aware instant captured at run start
        inactivity_cutoff: now minus the inactivity window (calendar months)
        today_end: 23:59:59 of now's calendar day, in now's time zone
    """
    now: datetime
    inactivity_cutoff: datetime
    today_end: datetime

    @classmethod
    def capture(cls, now: Optional[datetime] = None, inactivity_months: int = 6) -> 'RunClock':
        """
        Build the run clock.

        Args:
            now: Instant to use; defaults to the current local time. Naive
                 values are interpreted in the local time zone.
            inactivity_months: Size of the inactivity window
        """
        from account_closer.timestamps import date_to_end_of_day_instant, months_before

        if now is None:
            now = datetime.now().astimezone()
        elif now.tzinfo is None:
            now = now.astimezone()

        return cls(
            now=now,
            inactivity_cutoff=months_before(now, inactivity_months),
            today_end=date_to_end_of_day_instant(now.date(), now.tzinfo),
        )


@dataclass
class RunSummary:
    """Counters for one run, logged at the end."""
    total: int = 0
    closed: int = 0
    failed: int = 0
    skipped: int = 0
    ignored: int = 0
    malformed: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "closed": self.closed,
            "failed": self.failed,
            "skipped": self.skipped,
            "ignored": self.ignored,
            "malformed": self.malformed,
        }
