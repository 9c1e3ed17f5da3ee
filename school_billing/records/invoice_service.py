"""
Invoice Service Module.

Request-scoped invoice operations. Every write resolves the student
first and only then derives the snapshot, so a failed resolution never
leaves a half-written invoice.

Operations:
    - create: store a new invoice from a client body
    - update: replace an invoice's payload and re-derive its snapshot
    - get / latest / list: read invoices back in the canonical shape
"""

from typing import Any, Dict, List, Optional

from school_billing.output_handler.database_handler import DatabaseHandler
from school_billing.utils.logger import get_logger
from school_billing.utils.helpers import generate_record_id, is_valid_record_id, utc_timestamp
from school_billing.utils.exceptions import NotFoundError, ValidationError
from .metadata_extractor import derive_snapshot
from .models import InvoiceRecord
from .student_resolver import StudentResolver

logger = get_logger(__name__)


def unwrap_payload(body: Any) -> Dict[str, Any]:
    """
    Return the invoice payload from a request body.

    Clients send either the payload itself or ``{"data": payload}``.

    Raises:
        ValidationError: If no object payload is present.
    """
    if isinstance(body, dict) and isinstance(body.get('data'), dict):
        return body['data']
    if isinstance(body, dict):
        return body
    raise ValidationError("data", type(body).__name__, "Invalid invoice payload.")


class InvoiceService:
    """
    Creates, updates and reads invoices.

    Example:
        >>> service = InvoiceService(DatabaseHandler())
        >>> record = service.create({"customer": {"accountNo": "2024-0001", "name": "Maria Santos"},
        ...                          "amountDue": 1000})
        >>> record.to_dict()["status"]
        'Issued'
    """

    def __init__(
        self,
        store: Optional[DatabaseHandler] = None,
        resolver: Optional[StudentResolver] = None
    ) -> None:
        self.store = store or DatabaseHandler()
        self.resolver = resolver or StudentResolver(self.store)

    def _build_record(
        self,
        payload: Dict[str, Any],
        invoice_id: str,
        created_at: str,
        updated_at: str
    ) -> InvoiceRecord:
        student = self.resolver.resolve(payload)
        snapshot, data = derive_snapshot(payload, student)

        return InvoiceRecord(
            id=invoice_id,
            data=data,
            _snapshot=snapshot,
            student=student,
            student_id=student.id if student else None,
            created_at=created_at,
            updated_at=updated_at,
        )

    def _validate_id(self, invoice_id: str) -> None:
        if not is_valid_record_id(invoice_id):
            raise ValidationError("id", invoice_id, "Invalid invoice id.")

    def create(self, body: Any) -> InvoiceRecord:
        """
        Create an invoice from a client body.

        Raises:
            ValidationError: If the body carries no object payload.
            ConflictError: If the invoice code is already used.
            DatabaseError: If the store fails.
        """
        payload = unwrap_payload(body)
        now = utc_timestamp()

        record = self._build_record(payload, generate_record_id(), now, now)
        self.store.insert_invoice(record)

        logger.info(
            f"Created invoice {record.id} "
            f"(code={record.invoice_code or 'N/A'}, status={record.status})"
        )
        return record

    def update(self, invoice_id: str, body: Any) -> InvoiceRecord:
        """
        Replace an invoice's payload; the snapshot is derived again.

        Raises:
            ValidationError: If the id or payload is malformed.
            NotFoundError: If the invoice does not exist.
            ConflictError: If the new invoice code is already used.
            DatabaseError: If the store fails.
        """
        self._validate_id(invoice_id)
        payload = unwrap_payload(body)

        existing = self.store.get_invoice(invoice_id)
        if existing is None:
            raise NotFoundError("Invoice", invoice_id)

        record = self._build_record(payload, invoice_id, existing.created_at, utc_timestamp())
        if not self.store.update_invoice(record):
            raise NotFoundError("Invoice", invoice_id)

        if existing.status != record.status:
            logger.info(f"Invoice {invoice_id} status {existing.status} -> {record.status}")
        logger.info(f"Updated invoice {invoice_id}")
        return record

    def get(self, invoice_id: str) -> InvoiceRecord:
        self._validate_id(invoice_id)
        record = self.store.get_invoice(invoice_id)
        if record is None:
            raise NotFoundError("Invoice", invoice_id)
        return record

    def latest(self) -> InvoiceRecord:
        record = self.store.get_latest_invoice()
        if record is None:
            raise NotFoundError("Invoice", "latest")
        return record

    def list(self, limit: Optional[int] = None) -> List[InvoiceRecord]:
        return self.store.list_invoices(limit)
