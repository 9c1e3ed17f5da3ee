"""
Post-Processing Module.

Turns recognized receipt text (or just a filename) into payment fields:
    - Reference, amount, date, time and method heuristics
    - Filename-based seeding and fallback
    - Authenticity scoring
"""

from .receipt_fields import ReceiptFields, AuthenticityReport
from .validators import ReceiptValidator
from .heuristics import (
    extract_reference,
    extract_amount,
    extract_date,
    extract_time,
    extract_payment_method,
    parse_receipt_text,
    guess_amount_from_filename,
    guess_method_from_filename,
    guess_date_from_filename,
    guess_fields_from_filename,
    make_reference_number,
)

__all__ = [
    'ReceiptFields',
    'AuthenticityReport',
    'ReceiptValidator',
    'extract_reference',
    'extract_amount',
    'extract_date',
    'extract_time',
    'extract_payment_method',
    'parse_receipt_text',
    'guess_amount_from_filename',
    'guess_method_from_filename',
    'guess_date_from_filename',
    'guess_fields_from_filename',
    'make_reference_number',
]
