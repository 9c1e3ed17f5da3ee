"""
Record Data Classes.

Students, invoices and the derived invoice snapshot, plus the fixed
vocabularies (statuses, payment methods) shared across the package.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

STUDENT_STATUSES = ("Active", "Inactive", "Archived")

INVOICE_STATUSES = ("Draft", "Issued", "Partially Paid", "Paid", "Overdue", "Archived")

PAYMENT_METHODS = ("Cash", "GCash", "Maya", "Bank Transfer", "Card", "Other")


@dataclass
class Student:
    """
    Canonical student identity, keyed by a unique ``student_code``.

    Example:
        >>> Student(id="...", student_code="2024-0001", full_name="Maria Santos").to_dict()
        {'id': '...', 'studentCode': '2024-0001', 'fullName': 'Maria Santos', ...}
    """
    id: str
    student_code: str
    full_name: str
    grade_year: str = ""
    section_class: str = ""
    status: str = "Active"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Student':
        return cls(
            id=row['id'],
            student_code=row['student_code'],
            full_name=row['full_name'],
            grade_year=row.get('grade_year') or "",
            section_class=row.get('section_class') or "",
            status=row.get('status') or "Active",
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'studentCode': self.student_code,
            'fullName': self.full_name,
            'gradeYear': self.grade_year,
            'sectionClass': self.section_class,
            'status': self.status,
        }


@dataclass(frozen=True)
class InvoiceSnapshot:
    """
    Derived financial state of an invoice.

    Always recomputed from the payload by the metadata extractor on every
    write; frozen so it cannot be patched independently of the payload.
    """
    amount_due: float = 0.0
    amount_paid: float = 0.0
    balance: float = 0.0
    status: str = "Draft"
    issued_at: Optional[str] = None
    due_at: Optional[str] = None
    invoice_code: Optional[str] = None


@dataclass
class InvoiceRecord:
    """
    A stored invoice: the client payload plus its derived snapshot.

    Snapshot values are exposed as read-only properties.
    """
    id: str
    data: Dict[str, Any]
    _snapshot: InvoiceSnapshot = field(repr=False)
    student: Optional[Student] = None
    student_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def snapshot(self) -> InvoiceSnapshot:
        return self._snapshot

    @property
    def invoice_code(self) -> Optional[str]:
        return self._snapshot.invoice_code

    @property
    def amount_due(self) -> float:
        return self._snapshot.amount_due

    @property
    def amount_paid(self) -> float:
        return self._snapshot.amount_paid

    @property
    def balance(self) -> float:
        return self._snapshot.balance

    @property
    def status(self) -> str:
        return self._snapshot.status

    @property
    def issued_at(self) -> Optional[str]:
        return self._snapshot.issued_at

    @property
    def due_at(self) -> Optional[str]:
        return self._snapshot.due_at

    def to_dict(self) -> Dict[str, Any]:
        """Canonical response shape."""
        return {
            'id': self.id,
            'invoiceCode': self.invoice_code,
            'studentId': self.student_id,
            'student': self.student.to_dict() if self.student else None,
            'amountDue': self.amount_due,
            'amountPaid': self.amount_paid,
            'balance': self.balance,
            'status': self.status,
            'issuedAt': self.issued_at,
            'dueAt': self.due_at,
            'data': self.data,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }
