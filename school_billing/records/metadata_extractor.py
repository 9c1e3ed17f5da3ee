"""
Invoice Metadata Extractor.

Derives an invoice's canonical snapshot (amounts, balance, status, dates,
code) from its raw payload and resolved student. Pure: no I/O, and the
input payload is never mutated.

Derivation rules:
    amountDue   explicit ``amountDue``, else ``totals.grandTotal``, else 0; never negative
    amountPaid  explicit ``amountPaid``, else sum of ``payments[].amount``, else 0; never negative
    balance     explicit numeric ``balance``, else max(0, due - paid)
    status      explicit known status, else
                Paid (balance <= 0 and due > 0) → Partially Paid (paid > 0)
                → Issued (due > 0) → Draft
"""

from copy import deepcopy
from typing import Any, Dict, Optional, Tuple

from dateutil import parser as date_parser

from school_billing.utils.helpers import is_blank, to_number
from school_billing.utils.logger import get_logger
from .models import INVOICE_STATUSES, InvoiceSnapshot, Student

logger = get_logger(__name__)


def _section(payload: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


def _amount_due(payload: Dict[str, Any]) -> float:
    explicit = to_number(payload.get('amountDue'))
    if explicit is not None:
        return max(0.0, explicit)

    grand_total = to_number(_section(payload, 'totals').get('grandTotal'))
    if grand_total is not None:
        return max(0.0, grand_total)

    return 0.0


def _amount_paid(payload: Dict[str, Any]) -> float:
    explicit = to_number(payload.get('amountPaid'))
    if explicit is not None:
        return max(0.0, explicit)

    payments = payload.get('payments')
    if isinstance(payments, list):
        return max(0.0, sum(
            to_number(p.get('amount')) or 0.0
            for p in payments
            if isinstance(p, dict)
        ))

    return 0.0


def _derive_status(explicit: Any, amount_due: float, amount_paid: float, balance: float) -> str:
    if explicit in INVOICE_STATUSES:
        return explicit
    # Paid requires something to have been due; zero-due invoices with
    # payments report Partially Paid
    if balance <= 0 and amount_due > 0:
        return "Paid"
    if amount_paid > 0:
        return "Partially Paid"
    if amount_due > 0:
        return "Issued"
    return "Draft"


def _parse_date(value: Any) -> Optional[str]:
    """Normalize a payload date to YYYY-MM-DD; unparseable values become None."""
    if is_blank(value) or not isinstance(value, str):
        return None
    try:
        return date_parser.parse(value).date().isoformat()
    except (ValueError, OverflowError):
        logger.debug(f"Could not parse invoice date: {value!r}")
        return None


def _first_present(*values: Any) -> Any:
    for value in values:
        if not is_blank(value):
            return value
    return None


def _merge_student(payload: Dict[str, Any], student: Optional[Student]) -> Dict[str, Any]:
    """Copy student identity into ``customer`` where the client left it blank."""
    enriched = deepcopy(payload)
    if student is None:
        return enriched

    customer = enriched.get('customer')
    if not isinstance(customer, dict):
        customer = {}
        enriched['customer'] = customer

    for key, value in (
        ('studentId', student.id),
        ('accountNo', student.student_code),
        ('name', student.full_name),
    ):
        if is_blank(customer.get(key)):
            customer[key] = value

    return enriched


def derive_snapshot(
    payload: Dict[str, Any],
    student: Optional[Student] = None
) -> Tuple[InvoiceSnapshot, Dict[str, Any]]:
    """
    Compute an invoice's snapshot and self-describing payload.

    Args:
        payload: Raw invoice payload as supplied by the client.
        student: Student resolved for this payload, if any.

    Returns:
        Tuple of (snapshot, payload copy enriched with student identity).

    Example:
        >>> snapshot, _ = derive_snapshot({"amountDue": 1000, "amountPaid": 500})
        >>> snapshot.balance, snapshot.status
        (500.0, 'Partially Paid')
    """
    amount_due = _amount_due(payload)
    amount_paid = _amount_paid(payload)

    explicit_balance = to_number(payload.get('balance'))
    if explicit_balance is not None:
        balance = explicit_balance
    else:
        balance = max(0.0, amount_due - amount_paid)

    invoice = _section(payload, 'invoice')

    code = _first_present(payload.get('invoiceCode'), invoice.get('statementNo'))

    snapshot = InvoiceSnapshot(
        amount_due=amount_due,
        amount_paid=amount_paid,
        balance=balance,
        status=_derive_status(payload.get('status'), amount_due, amount_paid, balance),
        issued_at=_parse_date(_first_present(payload.get('issuedAt'), invoice.get('dateIssued'))),
        due_at=_parse_date(_first_present(payload.get('dueAt'), invoice.get('dueDate'))),
        invoice_code=str(code).strip() if code is not None else None,
    )

    logger.debug(
        f"Derived snapshot: due={amount_due} paid={amount_paid} "
        f"balance={balance} status={snapshot.status}"
    )
    return snapshot, _merge_student(payload, student)
