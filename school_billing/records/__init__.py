"""
Records Module.

Student and invoice reconciliation:
    - Data classes and fixed vocabularies
    - Student resolution (find or create)
    - Invoice snapshot derivation

The store-backed InvoiceService lives in ``records.invoice_service``.
"""

from .models import (
    Student,
    InvoiceSnapshot,
    InvoiceRecord,
    STUDENT_STATUSES,
    INVOICE_STATUSES,
    PAYMENT_METHODS,
)
from .student_resolver import StudentResolver, StudentReference
from .metadata_extractor import derive_snapshot

__all__ = [
    'Student',
    'InvoiceSnapshot',
    'InvoiceRecord',
    'STUDENT_STATUSES',
    'INVOICE_STATUSES',
    'PAYMENT_METHODS',
    'StudentResolver',
    'StudentReference',
    'derive_snapshot',
]
