import threading

import pytest

from school_billing.ocr_engine import ReceiptOCR
from school_billing.utils.exceptions import NotFoundError, ValidationError, WorkflowError
from school_billing.workflow import (
    ADDED,
    PENDING,
    READING_OCR,
    REJECTED,
    VERIFIED,
    ProofFile,
    ProofUploadWorkflow,
)

from conftest import FakeBackend


@pytest.fixture
def workflow(receipt_ocr):
    return ProofUploadWorkflow(ocr=receipt_ocr, payload={"payments": [{"reference": "OLD", "amount": 5}]})


@pytest.fixture
def upload(workflow, image_bytes):
    [created] = workflow.select_files([ProofFile("gcash_1,250_20240516.png", image_bytes)])
    return created


def test_select_files_seeds_from_filename(upload):
    assert upload.status == PENDING
    assert upload.amount == "1250"
    assert upload.method == "GCash"
    assert upload.date == "2024-05-16"
    assert upload.reference == upload.ref_no
    assert upload.ref_no.startswith("POP-")
    assert upload.ocr_progress == 0


def test_select_files_skips_non_images_and_puts_newest_first(workflow, image_bytes, upload):
    created = workflow.select_files([
        ProofFile("maya.jpg", image_bytes),
        ProofFile("notes.txt", b"hello"),
        ProofFile("scan", image_bytes, content_type="image/png"),
    ])

    assert [u.file_name for u in created] == ["maya.jpg", "scan"]
    assert [u.file_name for u in workflow.uploads] == ["maya.jpg", "scan", upload.file_name]


def test_read_ocr_refreshes_fields(workflow, upload):
    result = workflow.read_ocr(upload.id)

    assert result is upload
    assert upload.status == PENDING
    assert upload.ocr_progress == 100
    assert upload.reference == "ABC123456"
    assert upload.ocr_reference == "ABC123456"
    assert upload.amount == "1250"
    assert upload.date == "2024-05-16"
    # nothing in the text names a method, so the filename guess stays
    assert upload.method == "GCash"
    assert upload.authenticity is not None


def test_read_ocr_failure_leaves_fields_untouched(image_bytes):
    workflow = ProofUploadWorkflow(ocr=ReceiptOCR(backend=FakeBackend(error=RuntimeError("boom"))))
    [upload] = workflow.select_files([ProofFile("bpi_300.png", image_bytes)])
    before = upload.to_dict()

    assert workflow.read_ocr(upload.id) is upload
    assert upload.to_dict() == before
    assert upload.status == PENDING
    assert upload.ocr_progress == 0


def test_read_ocr_empty_text_is_recovered(image_bytes):
    workflow = ProofUploadWorkflow(ocr=ReceiptOCR(backend=FakeBackend(text="")))
    [upload] = workflow.select_files([ProofFile("cash_80.png", image_bytes)])

    workflow.read_ocr(upload.id)

    assert upload.status == PENDING
    assert upload.amount == "80"
    assert upload.ocr_progress == 0


def test_result_for_removed_upload_is_discarded(image_bytes):
    holder = {}
    backend = FakeBackend(before_return=lambda: holder['workflow'].remove(holder['id']))
    workflow = ProofUploadWorkflow(ocr=ReceiptOCR(backend=backend))
    [upload] = workflow.select_files([ProofFile("gcash_10.png", image_bytes)])
    holder.update(workflow=workflow, id=upload.id)

    assert workflow.read_ocr(upload.id) is None
    assert workflow.uploads == []
    assert upload.reference == upload.ref_no
    assert workflow.handles.active_handles() == []


def test_read_ocr_requires_pending(workflow, upload):
    workflow.add_to_payments(upload.id)
    with pytest.raises(WorkflowError):
        workflow.read_ocr(upload.id)


def test_read_all_runs_every_pending_upload_concurrently(image_bytes):
    started = threading.Barrier(3, timeout=10)
    backend = FakeBackend(before_return=started.wait)
    workflow = ProofUploadWorkflow(ocr=ReceiptOCR(backend=backend))
    workflow.select_files([ProofFile(f"gcash_{n}.png", image_bytes) for n in (1, 2, 3)])

    results = workflow.read_all()

    assert len(results) == 3
    assert all(u.reference == "ABC123456" for u in workflow.uploads)


def test_read_all_with_nothing_pending(workflow):
    assert workflow.read_all() == []


def test_add_to_payments_prepends_record(workflow, upload):
    workflow.read_ocr(upload.id)
    payment = workflow.add_to_payments(upload.id)

    assert workflow.payload["payments"][0] is payment
    assert workflow.payload["payments"][1]["reference"] == "OLD"
    assert payment["reference"] == "ABC123456"
    assert payment["amount"] == 1250.0
    assert payment["method"] == "GCash"
    assert payment["date"] == "2024-05-16"
    assert payment["proofUrl"] == upload.handle
    assert payment["proofFileName"] == upload.file_name
    assert upload.status == ADDED


def test_add_to_payments_uses_generated_reference_and_zero_amount(image_bytes):
    workflow = ProofUploadWorkflow(ocr=ReceiptOCR(backend=FakeBackend()))
    [upload] = workflow.select_files([ProofFile("photo.png", image_bytes)])

    payment = workflow.add_to_payments(upload.id)

    assert payment["reference"] == upload.ref_no
    assert payment["amount"] == 0.0
    assert workflow.payload["payments"] == [payment]


def test_verify_updates_matching_payment(workflow, upload):
    workflow.read_ocr(upload.id)
    workflow.add_to_payments(upload.id)

    assert workflow.verify(upload.id) == 1
    assert upload.status == VERIFIED
    assert workflow.payload["payments"][0]["proofStatus"] == VERIFIED
    assert "proofStatus" not in workflow.payload["payments"][1]


def test_reject_pending_upload(workflow, upload):
    assert workflow.reject(upload.id) == 0
    assert upload.status == REJECTED


def test_terminal_uploads_refuse_further_actions(workflow, upload):
    workflow.verify(upload.id)

    with pytest.raises(WorkflowError):
        workflow.reject(upload.id)
    with pytest.raises(WorkflowError):
        workflow.add_to_payments(upload.id)
    with pytest.raises(WorkflowError):
        workflow.edit(upload.id, amount="1")


def test_unknown_upload_is_not_found(workflow):
    with pytest.raises(NotFoundError):
        workflow.verify("missing")
    with pytest.raises(NotFoundError):
        workflow.remove("missing")


def test_edit_validates_fields(workflow, upload):
    workflow.edit(upload.id, amount="1,500", method="Maya")
    assert upload.amount == "1,500"
    assert upload.method == "Maya"

    with pytest.raises(ValidationError):
        workflow.edit(upload.id, method="Bitcoin")
    with pytest.raises(ValidationError):
        workflow.edit(upload.id, status="Verified")


def test_remove_releases_handle(workflow, upload):
    assert upload.handle in workflow.handles.active_handles()

    workflow.remove(upload.id)

    assert upload.handle not in workflow.handles.active_handles()
    with pytest.raises(NotFoundError):
        workflow.get(upload.id)


def test_total_amount(workflow, image_bytes):
    workflow.select_files([
        ProofFile("gcash_1,000.png", image_bytes),
        ProofFile("maya_250.50.png", image_bytes),
        ProofFile("photo.png", image_bytes),
    ])

    assert workflow.total_amount() == pytest.approx(1250.5)


def test_payload_is_copied(receipt_ocr):
    source = {"payments": []}
    workflow = ProofUploadWorkflow(ocr=receipt_ocr, payload=source)
    workflow.payload["payments"].append({"amount": 1})
    assert source == {"payments": []}


def test_edit_after_adding_keeps_payment_record_linked(workflow, upload):
    workflow.add_to_payments(upload.id)

    workflow.edit(upload.id, reference="REF999999", amount="2,000")
    payment = workflow.payload["payments"][0]

    assert payment["reference"] == "REF999999"
    assert payment["amount"] == 2000.0
    assert workflow.verify(upload.id) == 1
    assert payment["proofStatus"] == VERIFIED
    assert "proofStatus" not in workflow.payload["payments"][1]


def test_status_is_reading_ocr_while_recognizing(image_bytes):
    seen = []
    holder = {}
    backend = FakeBackend(before_return=lambda: seen.append(holder['workflow'].get(holder['id']).status))
    workflow = ProofUploadWorkflow(ocr=ReceiptOCR(backend=backend))
    [upload] = workflow.select_files([ProofFile("gcash_10.png", image_bytes)])
    holder.update(workflow=workflow, id=upload.id)

    workflow.read_ocr(upload.id)

    assert seen == [READING_OCR]
    assert upload.status == PENDING
    assert upload.ocr_progress == 100


def test_status_returns_to_pending_after_failed_read(image_bytes):
    seen = []
    holder = {}
    backend = FakeBackend(
        error=RuntimeError("boom"),
        before_return=lambda: seen.append(holder['workflow'].get(holder['id']).status),
    )
    workflow = ProofUploadWorkflow(ocr=ReceiptOCR(backend=backend))
    [upload] = workflow.select_files([ProofFile("gcash_10.png", image_bytes)])
    holder.update(workflow=workflow, id=upload.id)

    workflow.read_ocr(upload.id)

    assert seen == [READING_OCR]
    assert upload.status == PENDING
    assert upload.ocr_progress == 0
