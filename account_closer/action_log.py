"""
Action log: one line per attempted closure.

Lines look like:

    user@example.com dismissal 01.02.2024
    [DRY-RUN] old@example.com inactive since 14.06.2022 (last_login)
    [FAILED] broken@example.com inactive since 01.01.2020 (created)

The file is opened in append mode for every line; it is optionally emptied
once at the start of a run.
"""

import logging
from pathlib import Path
from typing import Union

from account_closer.models import Decision, EvidenceBasis
from account_closer.timestamps import format_pretty_date

logger = logging.getLogger(__name__)

DRY_RUN_PREFIX = "[DRY-RUN]"
FAILED_PREFIX = "[FAILED]"


def format_justification(decision: Decision) -> str:
    """
    Human readable reason for a Close decision.

    Notes dates are cited literally; age-based closures name the field
    the date comes from.
    """
    pretty = format_pretty_date(decision.evidence_date)
    if decision.basis is EvidenceBasis.NOTES:
        return f"dismissal {pretty}"
    if decision.basis is None:
        return decision.reason.value
    return f"inactive since {pretty} ({decision.basis.value})"


def format_action_line(email: str, decision: Decision, dry_run: bool = False, failed: bool = False) -> str:
    """Build one action log line (without newline)."""
    line = f"{email} {format_justification(decision)}"
    if failed:
        line = f"{FAILED_PREFIX} {line}"
    if dry_run:
        line = f"{DRY_RUN_PREFIX} {line}"
    return line


class ActionLog:
    """
    Append-only writer for the action log.

    Args:
        path: Log file path; parent directories are created
        dry_run: Prefix every line with [DRY-RUN]
        truncate: Empty the file when the log is opened
    """

    def __init__(self, path: Union[str, Path], dry_run: bool = False, truncate: bool = True):
        self.path = Path(path)
        self.dry_run = dry_run
        self.lines_written = 0

        self.path.parent.mkdir(parents=True, exist_ok=True)
        if truncate:
            self.path.write_text('', encoding='utf-8')
        logger.debug(f"Action log: {self.path} (dry_run={dry_run}, truncate={truncate})")

    def record(self, email: str, decision: Decision, failed: bool = False) -> str:
        """
        Append one line for a Close decision.

        Returns:
            The line written

        Raises:
            OSError: If the file cannot be written
        """
        line = format_action_line(email, decision, dry_run=self.dry_run, failed=failed)
        with open(self.path, 'a', encoding='utf-8') as f:
            f.write(line + '\n')
        self.lines_written += 1
        return line
