"""
Proof Upload Workflow Module.

Reviewer-side flow for photographed payment receipts:
    1. select_files   - one Pending upload per image, seeded from its filename
    2. read_ocr       - recognize the image and refresh the editable fields
    3. add_to_payments / verify / reject - reviewer decisions
    4. remove         - discard an upload and release its image

Status transitions:
    Pending -> Reading OCR -> Pending
    Pending -> Added | Verified | Rejected
    Added -> Verified | Rejected
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from copy import deepcopy
from typing import Any, Dict, Iterable, List, Optional, Union

from school_billing.ocr_engine import ReceiptOCR
from school_billing.postprocessor import guess_fields_from_filename, make_reference_number
from school_billing.records.models import PAYMENT_METHODS
from school_billing.utils.exceptions import (
    NotFoundError,
    OCRError,
    ValidationError,
    WorkflowError,
)
from school_billing.utils.helpers import generate_record_id, is_blank, to_number
from school_billing.utils.logger import get_logger
from .payment_proof import (
    ADDED,
    PENDING,
    READING_OCR,
    REJECTED,
    VERIFIED,
    ImageHandleRegistry,
    PaymentProofUpload,
    ProofFile,
)

logger = get_logger(__name__)

EDITABLE_FIELDS = ('reference', 'amount', 'method', 'date', 'time')


class ProofUploadWorkflow:
    """
    Holds proof uploads under review and the invoice payload they feed.

    The OCR engine is created on first use so that selecting files works
    without an installed engine.

    Attributes:
        payload: Invoice payload; accepted proofs are prepended to ``payments``
        handles: Registry of image display handles

    Example:
        >>> workflow = ProofUploadWorkflow(payload={"payments": []})
        >>> [upload] = workflow.select_files([ProofFile.from_path("gcash_1250.jpg")])
        >>> workflow.add_to_payments(upload.id)["amount"]
        1250.0
    """

    def __init__(
        self,
        ocr: Optional[ReceiptOCR] = None,
        payload: Optional[Dict[str, Any]] = None,
        handles: Optional[ImageHandleRegistry] = None
    ) -> None:
        self._ocr = ocr
        self.payload = deepcopy(payload) if payload is not None else {}
        self.handles = handles or ImageHandleRegistry()
        self._uploads: List[PaymentProofUpload] = []
        self._lock = threading.RLock()

    @property
    def ocr(self) -> ReceiptOCR:
        with self._lock:
            if self._ocr is None:
                self._ocr = ReceiptOCR()
            return self._ocr

    @property
    def uploads(self) -> List[PaymentProofUpload]:
        """Uploads, newest first."""
        with self._lock:
            return list(self._uploads)

    def get(self, upload_id: str) -> PaymentProofUpload:
        with self._lock:
            upload = self._find(upload_id)
        if upload is None:
            raise NotFoundError("Upload", upload_id)
        return upload

    def _find(self, upload_id: str) -> Optional[PaymentProofUpload]:
        for upload in self._uploads:
            if upload.id == upload_id:
                return upload
        return None

    def _require(self, upload_id: str, action: str, allowed: Iterable[str]) -> PaymentProofUpload:
        upload = self._find(upload_id)
        if upload is None:
            raise NotFoundError("Upload", upload_id)
        if upload.status not in allowed:
            raise WorkflowError(upload_id, upload.status, action)
        return upload

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_files(self, files: Iterable[Union[ProofFile, str]]) -> List[PaymentProofUpload]:
        """
        Create one Pending upload per selected image.

        Non-image files are skipped. Fields are seeded from the filename;
        the reference starts as a generated ``POP-`` number.

        Returns:
            The new uploads, in selection order.
        """
        created = []

        for item in files:
            proof = item if isinstance(item, ProofFile) else ProofFile.from_path(item)
            if not proof.is_image:
                logger.warning(f"Skipping non-image file: {proof.name}")
                continue

            seeded = guess_fields_from_filename(proof.name)
            ref_no = make_reference_number()
            upload = PaymentProofUpload(
                id=generate_record_id(),
                file_name=proof.name,
                handle=self.handles.create(proof.content),
                ref_no=ref_no,
                reference=ref_no,
                amount=seeded.amount,
                method=seeded.method,
                date=seeded.date,
            )
            created.append(upload)

        with self._lock:
            self._uploads[:0] = created

        if created:
            logger.info(f"Selected {len(created)} proof image(s)")
        return created

    def edit(self, upload_id: str, **changes: str) -> PaymentProofUpload:
        """
        Apply reviewer edits to a Pending or Added upload.

        For an Added upload the payment record it produced is rewritten too,
        so later decisions still find it by reference.

        Raises:
            ValidationError: On an unknown field or payment method.
        """
        for key, value in changes.items():
            if key not in EDITABLE_FIELDS:
                raise ValidationError(key, value, "Field is not editable.")
            if key == 'method' and value not in PAYMENT_METHODS:
                raise ValidationError(key, value, "Unknown payment method.")

        with self._lock:
            upload = self._require(upload_id, "edit", (PENDING, ADDED))
            previous_reference = upload.payment_reference
            for key, value in changes.items():
                setattr(upload, key, "" if value is None else str(value))
            if upload.status == ADDED:
                self._sync_payments(upload, previous_reference)
        return upload

    def _sync_payments(self, upload: PaymentProofUpload, previous_reference: str) -> None:
        for payment in self._payments_for(previous_reference):
            payment['reference'] = upload.payment_reference
            payment['date'] = upload.date
            payment['method'] = upload.method
            payment['amount'] = to_number(upload.amount) or 0.0

    def _payments_for(self, reference: str) -> List[Dict[str, Any]]:
        return [
            payment for payment in self.payload.get('payments') or []
            if isinstance(payment, dict) and payment.get('reference') == reference
        ]

    # ------------------------------------------------------------------
    # Recognition
    # ------------------------------------------------------------------

    def read_ocr(self, upload_id: str) -> Optional[PaymentProofUpload]:
        """
        Recognize an upload's image and refresh its fields.

        Blank OCR fields keep the current value. On failure the fields are
        left as they were and progress returns to 0.

        Returns:
            The upload, or None if it was removed while being read.

        Raises:
            NotFoundError: If the upload does not exist.
            WorkflowError: If the upload is not Pending.
        """
        with self._lock:
            upload = self._require(upload_id, "read", (PENDING,))
            upload.status = READING_OCR
            upload.ocr_progress = 0
            content = self.handles.get(upload.handle)
            file_name = upload.file_name

        def on_progress(percent: int) -> None:
            with self._lock:
                if self._find(upload_id) is not None:
                    upload.ocr_progress = percent

        try:
            fields = self.ocr.read(content, on_progress, source_name=file_name)
        except OCRError as e:
            logger.warning(f"OCR failed for {file_name}: {e}")
            with self._lock:
                upload.status = PENDING
                upload.ocr_progress = 0
                return upload if self._find(upload_id) is not None else None

        with self._lock:
            if self._find(upload_id) is None:
                logger.debug(f"Discarding OCR result for removed upload {upload_id}")
                return None

            upload.ocr_reference = fields.reference
            upload.ocr_amount = fields.amount
            upload.ocr_date = fields.date
            upload.reference = fields.reference or upload.reference
            upload.amount = fields.amount or upload.amount
            upload.date = fields.date or upload.date
            upload.time = fields.time or upload.time
            upload.method = fields.method or upload.method
            upload.authenticity = fields.authenticity
            upload.status = PENDING
            upload.ocr_progress = 100

        return upload

    def read_all(self) -> List[PaymentProofUpload]:
        """
        Read every Pending upload concurrently, one worker per upload.

        Returns:
            Uploads still present after reading.
        """
        with self._lock:
            pending = [u.id for u in self._uploads if u.status == PENDING]

        if not pending:
            return []

        logger.info(f"Reading {len(pending)} proof image(s)")
        with ThreadPoolExecutor(max_workers=len(pending)) as pool:
            results = list(pool.map(self._read_if_pending, pending))

        return [upload for upload in results if upload is not None]

    def _read_if_pending(self, upload_id: str) -> Optional[PaymentProofUpload]:
        try:
            return self.read_ocr(upload_id)
        except (NotFoundError, WorkflowError) as e:
            # removed or picked up by another reader since the batch started
            logger.debug(f"Skipping upload {upload_id}: {e}")
            return None

    # ------------------------------------------------------------------
    # Reviewer decisions
    # ------------------------------------------------------------------

    def add_to_payments(self, upload_id: str) -> Dict[str, Any]:
        """
        Prepend the upload as a payment record on the invoice payload.

        Returns:
            The payment record added.
        """
        with self._lock:
            upload = self._require(upload_id, "add", (PENDING,))

            payment = {
                'id': generate_record_id(),
                'date': upload.date,
                'reference': upload.payment_reference,
                'method': upload.method,
                'amount': to_number(upload.amount) or 0.0,
                'proofUrl': upload.handle,
                'proofFileName': upload.file_name,
                'proofStatus': PENDING,
            }
            payments = self.payload.get('payments')
            if not isinstance(payments, list):
                payments = []
                self.payload['payments'] = payments
            payments.insert(0, payment)
            upload.status = ADDED

        logger.info(f"Added proof {upload.file_name} to payments ({payment['reference']})")
        return payment

    def verify(self, upload_id: str) -> int:
        """Mark the upload Verified. Returns the number of payment records updated."""
        return self._decide(upload_id, VERIFIED, "verify")

    def reject(self, upload_id: str) -> int:
        """Mark the upload Rejected. Returns the number of payment records updated."""
        return self._decide(upload_id, REJECTED, "reject")

    def _decide(self, upload_id: str, status: str, action: str) -> int:
        with self._lock:
            upload = self._require(upload_id, action, (PENDING, ADDED))
            upload.status = status

            matching = self._payments_for(upload.payment_reference)
            for payment in matching:
                payment['proofStatus'] = status
            updated = len(matching)

        logger.info(f"Proof {upload.file_name} {status.lower()} ({updated} payment record(s))")
        return updated

    def remove(self, upload_id: str) -> None:
        """
        Discard an upload and release its image handle.

        Allowed in any status; a recognition still running for the upload
        finishes but its result is dropped.
        """
        with self._lock:
            upload = self._find(upload_id)
            if upload is None:
                raise NotFoundError("Upload", upload_id)
            self._uploads.remove(upload)
            self.handles.revoke(upload.handle)

        logger.debug(f"Removed upload {upload_id} ({upload.file_name})")

    def total_amount(self) -> float:
        """Sum of the uploads' amounts; non-numeric amounts count as 0."""
        with self._lock:
            return sum(to_number(u.amount) or 0.0 for u in self._uploads if not is_blank(u.amount))
