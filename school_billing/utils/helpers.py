"""
Helper Utilities Module.

Small generic helpers shared across the billing system.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - generate_record_id: New opaque record identifier
    - is_valid_record_id: Syntactic identifier check
    - utc_timestamp: ISO timestamp for created/updated fields
    - today_iso: Current local date as YYYY-MM-DD
    - to_number: Lenient numeric coercion for client payloads
    - format_amount: Render a float the way client payloads expect
"""

import re
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

RECORD_ID_PATTERN = re.compile(r'^[0-9a-f]{32}$')


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def generate_record_id() -> str:
    """Return a new 32-character lowercase hex identifier."""
    return uuid.uuid4().hex


def is_valid_record_id(value: Any) -> bool:
    """
    Check whether a value is a syntactically valid record identifier.

    Example:
        >>> is_valid_record_id("0f8c2b6c3e0a4f7b9d1e2a3b4c5d6e7f")
        True
        >>> is_valid_record_id("STU-001")
        False
    """
    return isinstance(value, str) and bool(RECORD_ID_PATTERN.match(value))


def utc_timestamp() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds')


def today_iso() -> str:
    """Current local date as YYYY-MM-DD."""
    return date.today().isoformat()


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a payload value to a float.

    Numbers pass through; strings are accepted after stripping whitespace
    and thousands separators. Booleans, blanks and anything non-numeric
    return None.

    Example:
        >>> to_number("1,250.00")
        1250.0
        >>> to_number("abc") is None
        True
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.strip().replace(',', '')
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None

    # NaN and infinities are not amounts
    if number != number or number in (float('inf'), float('-inf')):
        return None
    return number


def format_amount(value: float) -> str:
    """
    Render an amount without trailing zeros.

    Example:
        >>> format_amount(1250.0)
        '1250'
        >>> format_amount(999.5)
        '999.5'
    """
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip('0').rstrip('.')


def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings."""
    return value is None or (isinstance(value, str) and not value.strip())
