import pytest

from school_billing.records.invoice_service import InvoiceService, unwrap_payload
from school_billing.utils.exceptions import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def service(db):
    return InvoiceService(db)


def invoice_payload(**overrides):
    payload = {
        "customer": {"accountNo": "2024-0001", "name": "Maria Santos", "gradeYear": "Grade 7"},
        "invoice": {"statementNo": "SOA-0001", "dateIssued": "2024-05-01", "dueDate": "2024-05-31"},
        "totals": {"grandTotal": 12000},
        "payments": [],
    }
    payload.update(overrides)
    return payload


def test_unwrap_payload():
    assert unwrap_payload({"data": {"amountDue": 1}}) == {"amountDue": 1}
    assert unwrap_payload({"amountDue": 1}) == {"amountDue": 1}
    with pytest.raises(ValidationError):
        unwrap_payload(["not", "an", "object"])


def test_create_returns_canonical_record(service, db):
    record = service.create({"data": invoice_payload()}).to_dict()

    assert record["invoiceCode"] == "SOA-0001"
    assert record["amountDue"] == 12000.0
    assert record["amountPaid"] == 0.0
    assert record["balance"] == 12000.0
    assert record["status"] == "Issued"
    assert record["issuedAt"] == "2024-05-01"
    assert record["dueAt"] == "2024-05-31"
    assert record["student"]["studentCode"] == "2024-0001"
    assert record["studentId"] == record["student"]["id"]
    assert record["data"]["customer"]["studentId"] == record["studentId"]
    assert db.count_students() == 1


def test_get_round_trips_created_invoice(service):
    created = service.create(invoice_payload())
    fetched = service.get(created.id)

    assert fetched.to_dict() == created.to_dict()


def test_update_rederives_snapshot(service):
    created = service.create(invoice_payload())
    updated = service.update(created.id, invoice_payload(payments=[{"amount": 12000}]))

    assert updated.status == "Paid"
    assert updated.balance == 0.0
    assert updated.created_at == created.created_at
    assert service.get(created.id).status == "Paid"


def test_update_keeps_own_invoice_code(service):
    created = service.create(invoice_payload())
    updated = service.update(created.id, invoice_payload(amountPaid=100))
    assert updated.invoice_code == "SOA-0001"


def test_duplicate_invoice_code_conflicts(service):
    service.create(invoice_payload())
    with pytest.raises(ConflictError):
        service.create(invoice_payload())


def test_invoices_without_code_do_not_conflict(service):
    service.create({"amountDue": 100})
    service.create({"amountDue": 200})
    assert len(service.list()) == 2


def test_malformed_id_is_rejected(service):
    with pytest.raises(ValidationError):
        service.get("INV-1")
    with pytest.raises(ValidationError):
        service.update("INV-1", invoice_payload())


def test_unknown_id_is_not_found(service):
    with pytest.raises(NotFoundError):
        service.get("0" * 32)
    with pytest.raises(NotFoundError):
        service.update("0" * 32, invoice_payload())


def test_latest_and_list(service):
    with pytest.raises(NotFoundError):
        service.latest()

    first = service.create({"amountDue": 100})
    second = service.create({"amountDue": 200})

    assert service.latest().id == second.id
    assert [r.id for r in service.list()] == [second.id, first.id]
    assert [r.id for r in service.list(limit=1)] == [second.id]


def test_invoice_without_student_identity(service, db):
    record = service.create({"amountDue": 100, "customer": {"name": "Walk-in"}})

    assert record.student is None
    assert record.to_dict()["studentId"] is None
    assert db.count_students() == 0
