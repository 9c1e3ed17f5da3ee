"""
Payment Proof Data Classes.

Transient upload state for photographed receipts and the in-memory
registry that hands out display handles for their image bytes.
"""

import mimetypes
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from school_billing.postprocessor import AuthenticityReport

PENDING = "Pending"
READING_OCR = "Reading OCR"
ADDED = "Added"
VERIFIED = "Verified"
REJECTED = "Rejected"

UPLOAD_STATUSES = (PENDING, READING_OCR, ADDED, VERIFIED, REJECTED)
TERMINAL_STATUSES = (VERIFIED, REJECTED)


@dataclass
class ProofFile:
    """
    A selected file: name, raw bytes and optional declared content type.

    Example:
        >>> ProofFile.from_path("receipts/gcash_1250.jpg").is_image
        True
    """
    name: str
    content: bytes
    content_type: Optional[str] = None

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> 'ProofFile':
        path = Path(path)
        return cls(name=path.name, content=path.read_bytes())

    @property
    def is_image(self) -> bool:
        content_type = self.content_type or mimetypes.guess_type(self.name)[0] or ""
        return content_type.startswith("image/")


@dataclass
class PaymentProofUpload:
    """
    One uploaded receipt under review.

    Attributes:
        id: Upload identifier
        file_name: Original filename
        handle: Display handle for the image bytes (released on removal)
        ref_no: Generated internal reference (POP-YYYYMMDD-XXXXXX)
        reference: Reference used when the proof is added to payments
        amount: Amount as typed or read (string until added)
        method: Payment method
        date: Payment date, YYYY-MM-DD
        time: Payment time, if read from the receipt
        status: Pending, Reading OCR, Added, Verified or Rejected
        ocr_progress: Recognition progress 0-100
    """
    id: str
    file_name: str
    handle: str
    ref_no: str
    reference: str
    amount: str = ""
    method: str = "GCash"
    date: str = ""
    time: str = ""
    status: str = PENDING
    ocr_progress: int = 0
    ocr_reference: str = ""
    ocr_amount: str = ""
    ocr_date: str = ""
    authenticity: Optional[AuthenticityReport] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def payment_reference(self) -> str:
        """Reference carried into payment records: read or edited, else generated."""
        return self.reference or self.ref_no

    def to_dict(self) -> Dict[str, object]:
        return {
            'id': self.id,
            'fileName': self.file_name,
            'url': self.handle,
            'refNo': self.ref_no,
            'reference': self.reference,
            'amount': self.amount,
            'method': self.method,
            'date': self.date,
            'time': self.time,
            'status': self.status,
            'ocrProgress': self.ocr_progress,
            'ocrReference': self.ocr_reference,
            'ocrAmount': self.ocr_amount,
            'ocrDate': self.ocr_date,
            'authenticityScore': self.authenticity.score if self.authenticity else None,
            'securityWarnings': (
                self.authenticity.warnings + self.authenticity.critical
                if self.authenticity else []
            ),
        }


@dataclass
class ImageHandleRegistry:
    """
    Issues ``blob:`` handles for image bytes and releases them.

    Handles stay valid until revoked; revoking twice is harmless.
    """
    _images: Dict[str, bytes] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def create(self, content: bytes) -> str:
        handle = f"blob:{uuid.uuid4()}"
        with self._lock:
            self._images[handle] = content
        return handle

    def get(self, handle: str) -> Optional[bytes]:
        with self._lock:
            return self._images.get(handle)

    def revoke(self, handle: str) -> None:
        with self._lock:
            self._images.pop(handle, None)

    def active_handles(self) -> List[str]:
        with self._lock:
            return list(self._images)
