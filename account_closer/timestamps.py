"""
Utility functions for directory timestamps and dates embedded in notes.

This module provides functions to:
- Parse Zimbra generalized timestamps (20220614184815.765Z, 20220614184815Z)
- Find the first day/month/year triple in free-text notes
- Turn a calendar date into its end-of-day instant
- Subtract calendar months from an instant
"""
import logging
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from account_closer.models import EmbeddedDate

logger = logging.getLogger(__name__)

# 14 ASCII digits, optional ".<fraction>Z" or bare "Z"
DIRECTORY_TIMESTAMP_PATTERN = re.compile(r'^(\d{14})(?:\.\d+Z|Z)?$', re.ASCII)

# DD?MM?YYYY in ASCII digits, ? is one optional separator; first match wins
EMBEDDED_DATE_PATTERN = re.compile(r'(\d{2})[\s.,/_-]?(\d{2})[\s.,/_-]?(\d{4})', re.ASCII)


def parse_directory_timestamp(raw: Optional[str]) -> Optional[datetime]:
    """
    Parse a directory timestamp into a UTC-aware datetime.

    Accepts YYYYMMDDhhmmss optionally followed by a fractional-seconds
    suffix with a trailing Z, or a bare Z.

    Args:
        raw: Timestamp text as exported by the directory

    Returns:
        Aware datetime in UTC, or None if the value does not conform

    Examples:
        >>> parse_directory_timestamp("20220614184815.765Z")
        datetime.datetime(2022, 6, 14, 18, 48, 15, tzinfo=datetime.timezone.utc)
        >>> parse_directory_timestamp("yesterday") is None
        True
    """
    if not raw:
        return None

    match = DIRECTORY_TIMESTAMP_PATTERN.match(raw.strip())
    if not match:
        logger.debug(f"Not a directory timestamp: {raw!r}")
        return None

    try:
        parsed = datetime.strptime(match.group(1), '%Y%m%d%H%M%S')
    except ValueError:
        logger.debug(f"Directory timestamp is not a real instant: {raw!r}")
        return None

    return parsed.replace(tzinfo=timezone.utc)


def find_embedded_date(notes: Optional[str]) -> Optional[EmbeddedDate]:
    """
    Find the first day/month/year triple in free text.

    Separators may be whitespace, '.', ',', '/', '_' or '-', or absent
    (23.10.2024, 23,10,2024, 23 10 2024, 23102024). The match is
    leftmost and not anchored to word boundaries, so digits from an
    unrelated number can be picked up.

    Returns:
        EmbeddedDate for the first match, or None
    """
    if not notes:
        return None

    match = EMBEDDED_DATE_PATTERN.search(notes)
    if not match:
        return None

    day, month, year = (int(part) for part in match.groups())
    return EmbeddedDate(day=day, month=month, year=year, raw=match.group(0))


def extract_embedded_date(notes: Optional[str]) -> Optional[date]:
    """
    Calendar date of the first triple in the notes.

    Returns:
        The date, or None when there is no triple or it is not a real date

    Examples:
        >>> extract_embedded_date("reason: dismissed 01.02.2030")
        datetime.date(2030, 2, 1)
        >>> extract_embedded_date("no date here") is None
        True
    """
    embedded = find_embedded_date(notes)
    if embedded is None:
        return None
    try:
        return embedded.to_date()
    except ValueError:
        return None


def _local_tz() -> tzinfo:
    return datetime.now().astimezone().tzinfo


def date_to_end_of_day_instant(value: date, tz: Optional[tzinfo] = None) -> datetime:
    """
    Last second (23:59:59) of a calendar day.

    Defined for every date up to and including date.max.

    Args:
        value: Calendar date
        tz: Time zone of the day; the local zone when omitted
    """
    return datetime.combine(value, time(23, 59, 59), tzinfo=tz or _local_tz())


def months_before(instant: datetime, months: int) -> datetime:
    """
    Calendar subtraction of whole months.

    A day that does not exist in the target month rolls over into the
    next month, as `date -d "-6 months"` does: 31 August minus six months
    is 3 March (2 March in a leap year). The time of day is kept.
    """
    first_of_month = instant.replace(day=1) - relativedelta(months=months)
    return first_of_month + timedelta(days=instant.day - 1)


def format_pretty_date(value: Union[date, datetime, str, None]) -> str:
    """
    Render a date as DD.MM.YYYY.

    Directory timestamps are parsed first; text that is not a timestamp is
    returned unchanged.
    """
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.strftime('%d.%m.%Y')

    parsed = parse_directory_timestamp(value)
    if parsed is None:
        return value
    return parsed.strftime('%d.%m.%Y')
