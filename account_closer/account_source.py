"""
Reader for the semicolon-delimited account export.

Format (one header line, then one account per line):
    email;created;status;notes;last_login;display_name

A line with the wrong number of fields becomes a malformed entry instead of
an exception, so one bad row never stops the run. A missing file is fatal.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

from account_closer.error_handling import InputSourceError, MalformedRecordError
from account_closer.models import AccountRecord

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = ";"
FIELD_NAMES = ("email", "created", "status", "notes", "last_login", "display_name")


@dataclass(frozen=True)
class AccountEntry:
    """One data line of the export: either a record or the reason it is malformed."""
    line_number: int
    record: Optional[AccountRecord] = None
    error: Optional[MalformedRecordError] = None

    @property
    def is_malformed(self) -> bool:
        return self.error is not None


def parse_account_line(line: str, line_number: Optional[int] = None) -> AccountRecord:
    """
    Parse one data line into an AccountRecord.

    Raises:
        MalformedRecordError: If the line does not have exactly six fields
    """
    raw_line = line.rstrip("\r\n")
    fields = raw_line.split(FIELD_SEPARATOR)
    if len(fields) != len(FIELD_NAMES):
        raise MalformedRecordError(
            f"expected {len(FIELD_NAMES)} fields, got {len(fields)}",
            line_number=line_number,
            raw_line=raw_line,
        )

    values = dict(zip(FIELD_NAMES, (value.strip() for value in fields)))
    return AccountRecord(line_number=line_number, **values)


def read_account_entries(path: Union[str, Path], encoding: str = 'utf-8') -> Iterator[AccountEntry]:
    """
    Open the account export and stream it in source order.

    The file is opened immediately, so a missing export is reported before
    any entry is consumed. The header line is skipped and blank lines are
    ignored.

    Raises:
        InputSourceError: If the file does not exist or cannot be opened
    """
    source = Path(path)
    if not source.is_file():
        raise InputSourceError(f"Account file not found: {source}")

    try:
        handle = open(source, 'r', encoding=encoding, errors='replace', newline='')
    except OSError as e:
        raise InputSourceError(f"Cannot open account file {source}: {e}") from e

    return _iter_entries(handle)


def _iter_entries(handle) -> Iterator[AccountEntry]:
    with handle:
        for line_number, line in enumerate(handle, start=1):
            if line_number == 1:
                continue
            if not line.strip():
                continue
            try:
                yield AccountEntry(line_number=line_number, record=parse_account_line(line, line_number))
            except MalformedRecordError as e:
                yield AccountEntry(line_number=line_number, error=e)
