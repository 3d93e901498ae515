"""
One daily closure run, wired from configuration.

Startup order:
    1. Capture the run clock
    2. Open the diagnostic log and the action log for the selected mode
    3. Load the exclusion set (missing file: warning, empty set)
    4. Open the account export (missing file: InputSourceError, nothing processed)
    5. Drive every entry through the decision engine
"""
import logging
import uuid
from datetime import datetime
from typing import Optional

from account_closer.account_source import read_account_entries
from account_closer.action_log import ActionLog
from account_closer.closure import ClosureAction, ZmprovClosureAction
from account_closer.config_schema import CloserConfigSchema
from account_closer.decision_engine import DecisionPolicy
from account_closer.driver import ExecutionDriver
from account_closer.error_handling import ErrorCode, InputSourceError, log_error_with_context
from account_closer.exclusions import load_exclusions
from account_closer.logging_config import init_logging
from account_closer.logging_context import set_run_context
from account_closer.models import RunClock, RunSummary

logger = logging.getLogger(__name__)


def mode_label(dry_run: bool) -> str:
    return "DRY-RUN" if dry_run else "APPLY"


def run_job(
    config: CloserConfigSchema,
    dry_run: bool = False,
    closure_action: Optional[ClosureAction] = None,
    now: Optional[datetime] = None,
    config_source: Optional[str] = None,
    env_file: Optional[str] = None,
) -> RunSummary:
    """
    Execute one run.

    Args:
        config: Validated configuration
        dry_run: Simulate closures
        closure_action: Override the zmprov action (tests)
        now: Override the run clock (tests)
        config_source: Configuration file the config was read from (None: built-in defaults)
        env_file: .env file that was loaded, if any

    Returns:
        RunSummary of the run

    Raises:
        InputSourceError: If the account export is missing
        OSError: If the diagnostic log or the action log cannot be opened
    """
    clock = RunClock.capture(now=now, inactivity_months=config.policy.inactivity_months)
    paths = config.paths

    init_logging(
        diagnostic_log=paths.diagnostic_log,
        truncate=paths.truncate_logs_on_start,
        overrides=config.logging.model_dump(include=config.logging.model_fields_set),
    )
    set_run_context(run_id=uuid.uuid4().hex[:8], mode=mode_label(dry_run))
    logger.info(f"Start. Mode: {mode_label(dry_run)}. File: {paths.accounts_file}")
    logger.info(f"Configuration: {config_source or 'built-in defaults'}")
    if env_file:
        logger.info(f"Environment loaded from {env_file}")
    logger.debug(
        f"Run clock: now={clock.now.isoformat()}, inactivity_cutoff={clock.inactivity_cutoff.isoformat()}, "
        f"today_end={clock.today_end.isoformat()}"
    )

    try:
        action_log = ActionLog(
            config.action_log_path(dry_run),
            dry_run=dry_run,
            truncate=paths.truncate_logs_on_start,
        )
    except OSError as e:
        log_error_with_context(
            e, ErrorCode.ACTION_LOG_WRITE_FAILED,
            "Opening action log",
            context={'path': config.action_log_path(dry_run)},
            include_traceback=False
        )
        raise

    exclusions = load_exclusions(paths.exclusions_file, encoding=paths.encoding)

    try:
        entries = read_account_entries(paths.accounts_file, encoding=paths.encoding)
    except InputSourceError as e:
        logger.error(f"[{ErrorCode.INPUT_MISSING}] {e}")
        raise

    if closure_action is None:
        closure_action = ZmprovClosureAction(
            command=config.closure.command,
            path_prepend=config.closure.path_prepend,
        )

    driver = ExecutionDriver(
        closure_action=closure_action,
        action_log=action_log,
        clock=clock,
        exclusions=exclusions,
        dry_run=dry_run,
        policy=DecisionPolicy(
            active_status=config.policy.active_status,
            never_disable_marker=config.policy.never_disable_marker,
        ),
    )

    summary = driver.run(entries)
    logger.info(f"Done. Action log: {action_log.path}")
    return summary
