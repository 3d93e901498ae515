"""
Exclusion list loading.

The exclusion file is maintained by hand: the first line is a header, blank
lines are common, and one line may hold several addresses separated by
commas, semicolons, spaces or anything else. Addresses are found by pattern
rather than by splitting.

Usage:
    >>> from account_closer.exclusions import load_exclusions
    >>> exclusions = load_exclusions("/opt/zimbra/logs/tmp/actual_email TXT.txt")
    >>> "Boss@Example.com" in exclusions
    True
"""

import logging
import re
from pathlib import Path
from typing import List, Union

from account_closer.error_handling import ErrorCode, log_error_with_context
from account_closer.models import ExclusionSet

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}', re.IGNORECASE)


def extract_emails(text: str) -> List[str]:
    """
    Find every address in a piece of text, lower-cased, in order.

    Example:
        >>> extract_emails("foo@bar.com, BAZ@QUX.COM")
        ['foo@bar.com', 'baz@qux.com']
    """
    if not text:
        return []
    return [match.lower() for match in EMAIL_PATTERN.findall(text)]


def parse_exclusions(text: str) -> frozenset:
    """
    Collect excluded addresses from the file contents.

    The first line is a header and is discarded; empty lines contribute
    nothing. Duplicates collapse.
    """
    emails = set()
    for line_number, line in enumerate(text.splitlines()[1:], start=2):
        if not line.strip():
            continue
        found = extract_emails(line)
        if not found:
            logger.warning(f"No address found on exclusion line {line_number}: {line.strip()!r}")
            continue
        emails.update(found)
    return frozenset(emails)


def load_exclusions(path: Union[str, Path], encoding: str = 'utf-8') -> ExclusionSet:
    """
    Load the exclusion set from a file.

    A missing or unreadable file does not stop the run: a warning is
    logged and an empty set (source_found=False) is returned.

    Args:
        path: Exclusion file path
        encoding: File encoding; undecodable bytes are replaced

    Returns:
        ExclusionSet with normalized addresses
    """
    source = Path(path)
    if not source.is_file():
        logger.warning(f"[{ErrorCode.EXCLUSIONS_MISSING}] Exclusion file not found: {source}")
        return ExclusionSet.empty(str(source))

    try:
        text = source.read_text(encoding=encoding, errors='replace')
    except OSError as e:
        log_error_with_context(
            e, ErrorCode.EXCLUSIONS_READ_FAILED,
            "Reading exclusion file",
            context={'path': str(source)},
            level=logging.WARNING,
            include_traceback=False
        )
        return ExclusionSet.empty(str(source))

    emails = parse_exclusions(text)
    logger.info(f"Loaded {len(emails)} exclusions from {source}")
    return ExclusionSet(emails=emails, source=str(source), source_found=True)
