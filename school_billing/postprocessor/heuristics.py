"""
Receipt Text Heuristics Module.

Pure functions that pull payment fields out of free-form OCR text, and
weaker guesses out of an upload's filename.

Text heuristics:
    - extract_reference: labelled reference number, else longest code-like run
    - extract_amount: largest currency-like figure on the receipt
    - extract_date: ISO literal, else "<Month> <day>, <year>"
    - extract_time: 12-hour or 24-hour clock time
    - extract_payment_method: wallet/bank/card keywords

Filename heuristics:
    - guess_amount_from_filename
    - guess_method_from_filename
    - guess_date_from_filename

Keyword tables (currency prefixes, bank and wallet names) come from the
``heuristics`` section of settings.yaml.
"""

import re
import uuid
from datetime import date
from typing import Dict, Iterable, List, Optional

from config import get_config
from school_billing.utils.helpers import format_amount, today_iso
from school_billing.utils.logger import get_logger
from .receipt_fields import ReceiptFields
from .validators import ReceiptValidator

logger = get_logger(__name__)

DEFAULT_CURRENCY_PREFIXES = ["php", "₱"]

DEFAULT_FILENAME_METHODS = [
    {"keywords": ["maya"], "method": "Maya"},
    {"keywords": ["bdo", "bpi", "union"], "method": "Bank Transfer"},
    {"keywords": ["cash"], "method": "Cash"},
]

DEFAULT_TEXT_METHODS = [
    {"keywords": ["gcash", "g-cash"], "method": "GCash"},
    {"keywords": ["paymaya", "maya"], "method": "Maya"},
    {"keywords": ["bdo", "bpi", "metrobank", "unionbank", "bank transfer"], "method": "Bank Transfer"},
    {"keywords": ["visa", "mastercard", "debit card", "credit card"], "method": "Card"},
    {"keywords": ["cash"], "method": "Cash"},
]

MONTHS = ["jan", "feb", "mar", "apr", "may", "jun",
          "jul", "aug", "sep", "oct", "nov", "dec"]

REFERENCE_LABEL_PATTERN = re.compile(
    r'reference\s*(?:number|no\.?)?[:\-]?\s*(?!(?:number|no)\b)([A-Z0-9-]{4,})',
    re.IGNORECASE
)
REFERENCE_RUN_PATTERN = re.compile(r'[A-Z0-9-]{10,}')

# Decimal form first so "1250.00" is not cut at three digits
AMOUNT_NUMBER = r'([0-9]+\.[0-9]{2}|[0-9]{1,3}(?:,[0-9]{3})*(?:\.[0-9]{2})?)'

ISO_DATE_PATTERN = re.compile(r'(20\d{2})[-/](\d{2})[-/](\d{2})')
MONTH_DATE_PATTERN = re.compile(
    r'(' + '|'.join(MONTHS) + r')\.?[a-z]*\s+(\d{1,2}),?\s+(20\d{2})',
    re.IGNORECASE
)

TIME_12H_PATTERN = re.compile(
    r'\b(0?[1-9]|1[0-2]):([0-5]\d)(?::([0-5]\d))?\s*([AP]M)\b',
    re.IGNORECASE
)
TIME_24H_PATTERN = re.compile(r'\b([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?\b')

FILENAME_AMOUNT_PATTERN = re.compile(r'(\d+(?:\.\d{1,2})?)')
FILENAME_DATE_PATTERN = re.compile(r'(20\d{2})[-_ ]?(\d{2})[-_ ]?(\d{2})')


def normalize_text(text: Optional[str]) -> str:
    """Collapse all whitespace runs to single spaces."""
    return re.sub(r'\s+', ' ', text or '').strip()


def _iso_date(year: str, month: str, day: str) -> Optional[str]:
    """Build YYYY-MM-DD, or None for an impossible calendar date."""
    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        return None


def _amount_pattern(prefixes: Optional[Iterable[str]] = None) -> re.Pattern:
    prefixes = prefixes or get_config("heuristics.currency_prefixes", DEFAULT_CURRENCY_PREFIXES)
    alternatives = '|'.join(re.escape(p) for p in prefixes)
    return re.compile(rf'(?:{alternatives})?\s*{AMOUNT_NUMBER}', re.IGNORECASE)


def _match_method(haystack: str, table: List[Dict], word_boundary: bool) -> str:
    for entry in table:
        for keyword in entry.get("keywords", []):
            keyword = keyword.lower()
            if word_boundary:
                found = re.search(rf'\b{re.escape(keyword)}\b', haystack) is not None
            else:
                found = keyword in haystack
            if found:
                return entry["method"]
    return ""


# =============================================================================
# TEXT HEURISTICS
# =============================================================================

def extract_reference(text: str) -> str:
    """
    Extract a payment reference number.

    Prefers the token after a "Reference", "Reference Number" or
    "Reference No." label; otherwise the longest run of ten or more
    uppercase letters, digits and hyphens.

    Example:
        >>> extract_reference("Reference Number: ABC123456 Amount: PHP 1,250.00")
        'ABC123456'
        >>> extract_reference("TXN 0012345678901 OK")
        '0012345678901'
    """
    clean = normalize_text(text)

    labelled = REFERENCE_LABEL_PATTERN.search(clean)
    if labelled:
        return labelled.group(1)

    runs = [run for run in REFERENCE_RUN_PATTERN.findall(clean) if run.strip('-')]
    if runs:
        return max(runs, key=len)

    return ""


def extract_amount(text: str, prefixes: Optional[Iterable[str]] = None) -> str:
    """
    Extract the amount paid as the largest currency-like figure.

    Receipts carry several smaller numbers (fees, dates, counters); the
    total is usually the biggest. Integers without thousands separators
    only match up to three digits, so long reference numbers and years
    are not mistaken for amounts.

    Example:
        >>> extract_amount("Fee PHP 15.00 Amount PHP 1,250.00")
        '1250'
    """
    clean = normalize_text(text)

    values = []
    for match in _amount_pattern(prefixes).finditer(clean):
        try:
            values.append(float(match.group(1).replace(',', '')))
        except ValueError:
            continue

    if not values:
        return ""
    return format_amount(max(values))


def extract_date(text: str) -> str:
    """
    Extract a transaction date as YYYY-MM-DD.

    Tries 20YY-MM-DD / 20YY/MM/DD literals first, then dates written as
    "May 16, 2024" (three-letter month prefix, any case).

    Example:
        >>> extract_date("Paid on May 16, 2024 10:32")
        '2024-05-16'
    """
    for match in ISO_DATE_PATTERN.finditer(text or ''):
        parsed = _iso_date(*match.groups())
        if parsed:
            return parsed

    for match in MONTH_DATE_PATTERN.finditer(text or ''):
        month_name, day, year = match.groups()
        month = MONTHS.index(month_name[:3].lower()) + 1
        parsed = _iso_date(year, str(month), day)
        if parsed:
            return parsed

    return ""


def extract_time(text: str) -> str:
    """
    Extract a transaction time.

    12-hour times keep their meridiem ("02:34:00 PM"); 24-hour times are
    zero-padded ("14:34:00").
    """
    clean = normalize_text(text)

    match = TIME_12H_PATTERN.search(clean)
    if match:
        hours, minutes, seconds, meridiem = match.groups()
        return f"{int(hours):02d}:{minutes}:{int(seconds or 0):02d} {meridiem.upper()}"

    match = TIME_24H_PATTERN.search(clean)
    if match:
        hours, minutes, seconds = match.groups()
        return f"{int(hours):02d}:{minutes}:{int(seconds or 0):02d}"

    return ""


def extract_payment_method(text: str) -> str:
    """Map wallet, bank and card keywords in the text onto a payment method."""
    table = get_config("heuristics.text_methods", DEFAULT_TEXT_METHODS)
    return _match_method(normalize_text(text).lower(), table, word_boundary=True)


def parse_receipt_text(text: str, ocr_confidence: Optional[float] = None) -> ReceiptFields:
    """
    Run every text heuristic over recognized receipt text.

    Args:
        text: Raw OCR output.
        ocr_confidence: Optional engine confidence (0-100) for scoring.

    Returns:
        ReceiptFields with empty strings for anything not found.
    """
    fields = ReceiptFields(
        reference=extract_reference(text),
        amount=extract_amount(text),
        date=extract_date(text),
        time=extract_time(text),
        method=extract_payment_method(text),
    )
    fields.authenticity = ReceiptValidator().assess(text, fields, ocr_confidence)

    logger.debug(
        f"Parsed receipt text: extracted={sorted(fields.extracted_fields)} "
        f"missing={fields.missing_fields}"
    )
    return fields


# =============================================================================
# FILENAME HEURISTICS
# =============================================================================

def guess_amount_from_filename(name: str) -> str:
    """
    First numeric run in the filename, commas stripped.

    Example:
        >>> guess_amount_from_filename("gcash_1,250.jpg")
        '1250'
    """
    match = FILENAME_AMOUNT_PATTERN.search(str(name or '').replace(',', ''))
    return match.group(1) if match else ""


def guess_method_from_filename(name: str) -> str:
    """
    Payment method implied by the filename, defaulting to GCash.

    Example:
        >>> guess_method_from_filename("bdo_receipt.png")
        'Bank Transfer'
    """
    table = get_config("heuristics.filename_methods", DEFAULT_FILENAME_METHODS)
    method = _match_method(str(name or '').lower(), table, word_boundary=False)
    return method or get_config("heuristics.default_method", "GCash")


def guess_date_from_filename(name: str, today: Optional[str] = None) -> str:
    """
    First YYYYMMDD or YYYY-MM-DD run in the filename, else today.

    Args:
        name: Upload filename.
        today: Override for the fallback date (YYYY-MM-DD).
    """
    for match in FILENAME_DATE_PATTERN.finditer(str(name or '')):
        parsed = _iso_date(*match.groups())
        if parsed:
            return parsed
    return today or today_iso()


def guess_fields_from_filename(name: str, today: Optional[str] = None) -> ReceiptFields:
    """Seed fields for a new upload before (or instead of) OCR."""
    return ReceiptFields(
        amount=guess_amount_from_filename(name),
        method=guess_method_from_filename(name),
        date=guess_date_from_filename(name, today),
    )


def make_reference_number(on: Optional[date] = None) -> str:
    """
    Generate an internal proof reference such as ``POP-20240516-3FA9C1``.

    Used when a receipt carries no readable reference of its own.
    """
    on = on or date.today()
    short = uuid.uuid4().hex[:6].upper()
    return f"POP-{on.strftime('%Y%m%d')}-{short}"
