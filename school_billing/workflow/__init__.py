"""
Workflow Module.

Reviewer workflow for payment-proof images: selection, OCR reading and
the decisions that feed an invoice's payment records.
"""

from .payment_proof import (
    PaymentProofUpload,
    ProofFile,
    ImageHandleRegistry,
    PENDING,
    READING_OCR,
    ADDED,
    VERIFIED,
    REJECTED,
    UPLOAD_STATUSES,
)
from .proof_upload import ProofUploadWorkflow

__all__ = [
    'PaymentProofUpload',
    'ProofFile',
    'ImageHandleRegistry',
    'ProofUploadWorkflow',
    'PENDING',
    'READING_OCR',
    'ADDED',
    'VERIFIED',
    'REJECTED',
    'UPLOAD_STATUSES',
]
