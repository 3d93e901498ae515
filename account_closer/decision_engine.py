"""
Account Decision Engine

Decides, for a single account record, whether it must be closed, skipped
or ignored in the current run.

Rules are evaluated in a fixed order and the first rule that returns a
decision wins:

    1. not a candidate      -> Ignore  (status is not active, or no email)
    2. exclusion list       -> Skip
    3. never_disable marker -> Skip
    4. date in notes        -> Close if the date is today or earlier,
                               otherwise Ignore (no other rule runs)
    5. last_login           -> Close if older than the inactivity cutoff
    6. created              -> Close if older than the inactivity cutoff
                               (only when last_login is empty)

The order is part of the contract: a future date in the notes must stop
the login-age checks, and an excluded account must never reach the date
rules.

Usage:
    >>> from account_closer.decision_engine import decide
    >>> from account_closer.models import RunClock, ExclusionSet
    >>>
    >>> clock = RunClock.capture()
    >>> decision = decide(record, clock, ExclusionSet())
    >>> decision.kind
    <DecisionKind.CLOSE: 'close'>
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from account_closer.models import (
    AccountRecord,
    Decision,
    DecisionReason,
    EvidenceBasis,
    ExclusionSet,
    RunClock,
    ACTIVE_STATUS,
)
from account_closer.timestamps import (
    find_embedded_date,
    parse_directory_timestamp,
)

logger = logging.getLogger(__name__)

NEVER_DISABLE_MARKER = "never_disable"


@dataclass(frozen=True)
class DecisionPolicy:
    """
    Literal values the rules compare against.

    Fields:
        active_status: Status value that makes an account a candidate
        never_disable_marker: Notes marker (case-insensitive) that protects an account
    """
    active_status: str = ACTIVE_STATUS
    never_disable_marker: str = NEVER_DISABLE_MARKER


DEFAULT_POLICY = DecisionPolicy()


@dataclass(frozen=True)
class RuleInput:
    """Everything a rule may look at; read-only."""
    record: AccountRecord
    clock: RunClock
    exclusions: ExclusionSet
    policy: DecisionPolicy


Rule = Callable[[RuleInput], Optional[Decision]]


def rule_candidate(inp: RuleInput) -> Optional[Decision]:
    """Only active accounts with an address are considered."""
    if not inp.record.email.strip():
        return Decision.ignore(DecisionReason.MISSING_EMAIL)
    if not inp.record.is_active(inp.policy.active_status):
        return Decision.ignore(DecisionReason.NOT_ACTIVE, detail=inp.record.status.strip())
    return None


def rule_excluded(inp: RuleInput) -> Optional[Decision]:
    if inp.record.normalized_email in inp.exclusions:
        return Decision.skip(DecisionReason.EXCLUDED)
    return None


def rule_never_disable(inp: RuleInput) -> Optional[Decision]:
    if inp.policy.never_disable_marker.lower() in inp.record.notes.lower():
        return Decision.skip(DecisionReason.NEVER_DISABLE)
    return None


def rule_notes_date(inp: RuleInput) -> Optional[Decision]:
    """
    A date in the notes fully determines the outcome.

    The date counts as reached when it is the run's current day or any
    earlier day (end-of-day granularity). A triple that is not a real
    calendar date leaves the account untouched.
    """
    embedded = find_embedded_date(inp.record.notes)
    if embedded is None:
        return None

    try:
        notes_date = embedded.to_date()
    except ValueError:
        return Decision.ignore(DecisionReason.INVALID_NOTES_DATE, detail=embedded.raw)

    if notes_date > inp.clock.today_end.date():
        return Decision.ignore(DecisionReason.FUTURE_NOTES_DATE, detail=embedded.pretty())

    return Decision.close(DecisionReason.NOTES_DATE_REACHED, notes_date, EvidenceBasis.NOTES)


def rule_last_login(inp: RuleInput) -> Optional[Decision]:
    raw = inp.record.last_login.strip()
    if not raw:
        return None

    last_login = parse_directory_timestamp(raw)
    if last_login is None:
        return Decision.skip(DecisionReason.UNPARSABLE_LAST_LOGIN, detail=raw)
    if last_login < inp.clock.inactivity_cutoff:
        return Decision.close(DecisionReason.INACTIVE_BY_LAST_LOGIN, last_login.date(), EvidenceBasis.LAST_LOGIN)
    return Decision.skip(DecisionReason.ACTIVE_WITHIN_WINDOW)


def rule_created(inp: RuleInput) -> Optional[Decision]:
    """Fallback when the account never logged in; always decides."""
    created = parse_directory_timestamp(inp.record.created)
    if created is not None and created < inp.clock.inactivity_cutoff:
        return Decision.close(DecisionReason.INACTIVE_BY_CREATED, created.date(), EvidenceBasis.CREATED)
    return Decision.skip(DecisionReason.NO_QUALIFYING_SIGNAL)


DECISION_RULES: Tuple[Rule, ...] = (
    rule_candidate,
    rule_excluded,
    rule_never_disable,
    rule_notes_date,
    rule_last_login,
    rule_created,
)


def decide(
    record: AccountRecord,
    clock: RunClock,
    exclusions: ExclusionSet,
    policy: Optional[DecisionPolicy] = None,
    rules: Tuple[Rule, ...] = DECISION_RULES,
) -> Decision:
    """
    Decide what to do with one account.

    Pure function of its arguments: the same record, clock and exclusions
    always give the same decision.

    Args:
        record: Account row
        clock: Run clock captured at run start
        exclusions: Exclusion set for this run
        policy: Literal values for status and marker (defaults if omitted)
        rules: Ordered rule chain

    Returns:
        Exactly one Decision
    """
    inp = RuleInput(record=record, clock=clock, exclusions=exclusions, policy=policy or DEFAULT_POLICY)
    for rule in rules:
        decision = rule(inp)
        if decision is not None:
            return decision

    # rule_created always decides; reached only with a custom rule chain
    return Decision.skip(DecisionReason.NO_QUALIFYING_SIGNAL)
