"""
Execution Driver

Streams account entries through the decision engine, performs (or
simulates) the closure for every Close decision, and records the outcome
in the action log and the diagnostic log.

Each account is handled on its own: a malformed line, a failed closure or
an unexpected exception is logged and counted, and the run continues with
the next account.

Usage:
    >>> driver = ExecutionDriver(
    ...     closure_action=ZmprovClosureAction(),
    ...     action_log=ActionLog('logs/actions.log', dry_run=True),
    ...     clock=RunClock.capture(),
    ...     exclusions=load_exclusions('exclusions.txt'),
    ...     dry_run=True,
    ... )
    >>> summary = driver.run(read_account_entries('accounts.csv'))
    >>> summary.closed
    3
"""
import logging
from typing import Iterable, Optional

from account_closer.account_source import AccountEntry
from account_closer.action_log import ActionLog
from account_closer.closure import ClosureAction, ClosureResult
from account_closer.decision_engine import DecisionPolicy, decide
from account_closer.error_handling import ErrorCode, categorize_error, log_error_with_context
from account_closer.logging_context import with_account_context
from account_closer.models import (
    AccountRecord,
    Decision,
    DecisionKind,
    ExclusionSet,
    RunClock,
    RunSummary,
)

logger = logging.getLogger(__name__)


class ExecutionDriver:
    """
    Applies decisions to a stream of account entries.

    Args:
        closure_action: Performs the actual status change
        action_log: Receives one line per Close decision
        clock: Run clock shared by every decision of the run
        exclusions: Exclusion set shared by every decision of the run
        dry_run: Simulate closures instead of performing them
        policy: Decision policy (defaults when omitted)
    """

    def __init__(
        self,
        closure_action: ClosureAction,
        action_log: ActionLog,
        clock: RunClock,
        exclusions: ExclusionSet,
        dry_run: bool = False,
        policy: Optional[DecisionPolicy] = None,
    ):
        self.closure_action = closure_action
        self.action_log = action_log
        self.clock = clock
        self.exclusions = exclusions
        self.dry_run = dry_run
        self.policy = policy

    def run(self, entries: Iterable[AccountEntry]) -> RunSummary:
        """
        Process every entry in source order.

        Returns:
            RunSummary with per-outcome counters
        """
        summary = RunSummary()

        for entry in entries:
            summary.total += 1

            if entry.is_malformed:
                summary.malformed += 1
                log_error_with_context(
                    entry.error, ErrorCode.RECORD_MALFORMED,
                    "Parsing account line",
                    context={'line': entry.line_number, 'raw': entry.error.raw_line[:120]},
                    level=logging.WARNING,
                    include_traceback=False
                )
                continue

            record = entry.record
            with with_account_context(record.email or f"line {entry.line_number}"):
                try:
                    self._process_record(record, summary)
                except Exception as e:
                    summary.failed += 1
                    error_code, _category = categorize_error(e)
                    log_error_with_context(
                        e, error_code,
                        "Processing account",
                        context={'email': record.email, 'line': record.line_number}
                    )

        logger.info(
            f"Run finished: total={summary.total}, closed={summary.closed}, failed={summary.failed}, "
            f"skipped={summary.skipped}, ignored={summary.ignored}, malformed={summary.malformed}"
        )
        return summary

    def _process_record(self, record: AccountRecord, summary: RunSummary) -> None:
        decision = decide(record, self.clock, self.exclusions, self.policy)

        if decision.kind is DecisionKind.IGNORE:
            summary.ignored += 1
            logger.info(f"Ignore ({decision.describe()}): {record.email}")
            return

        if decision.kind is DecisionKind.SKIP:
            summary.skipped += 1
            logger.info(f"Skip ({decision.describe()}): {record.email}")
            return

        self._close(record, decision, summary)

    def _close(self, record: AccountRecord, decision: Decision, summary: RunSummary) -> None:
        email = record.email.strip()
        try:
            result: ClosureResult = self.closure_action.close(email, simulate=self.dry_run)
        except Exception as e:
            summary.failed += 1
            self._record_action(email, decision, failed=True)
            error_code, _category = categorize_error(e)
            log_error_with_context(
                e, error_code,
                f"Closing account ({decision.describe()})",
                context={'email': email, 'line': record.line_number}
            )
            return

        if result.success:
            summary.closed += 1
            self._record_action(email, decision, failed=False)
            logger.info(f"Closed ({decision.describe()}): {email}")
            return

        summary.failed += 1
        self._record_action(email, decision, failed=True)
        logger.error(
            f"[{ErrorCode.CLOSURE_FAILED}] Closing account failed ({decision.describe()}): {email}"
            f" | {result.detail}"
        )

    def _record_action(self, email: str, decision: Decision, failed: bool) -> None:
        # the closure already happened; a log write error must not change the counters
        try:
            self.action_log.record(email, decision, failed=failed)
        except OSError as e:
            log_error_with_context(
                e, ErrorCode.ACTION_LOG_WRITE_FAILED,
                "Writing action log",
                context={'email': email, 'path': str(self.action_log.path)},
                include_traceback=False
            )
