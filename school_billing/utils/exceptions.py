"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout the billing
reconciliation system. Each exception carries the HTTP-equivalent status
a caller should surface, so request handlers can map errors without
inspecting messages.

Exception Hierarchy:
    BillingError (base)
    ├── InputError
    │   └── CorruptedFileError
    ├── OCRError
    │   ├── OCREngineNotAvailableError
    │   └── OCRProcessingError
    ├── RecordError
    │   ├── ValidationError
    │   ├── NotFoundError
    │   └── ConflictError
    ├── StorageError
    │   └── DatabaseError
    └── WorkflowError
"""


class BillingError(Exception):
    """
    Root of the package's error hierarchy.

    Attributes:
        message: Human-readable error message.
        details: Structured context (ids, field names, reasons).
        http_status: Status a request handler should answer with.
    """

    http_status = 500

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{k}={v}" for k, v in self.details.items() if v is not None)
        return f"{self.message} ({context})" if context else self.message

    def to_dict(self) -> dict:
        """Error body for API-style responses."""
        return {"error": type(self).__name__, "message": self.message, "details": self.details}


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(BillingError):
    """Base exception for input handling errors."""
    http_status = 400


class CorruptedFileError(InputError):
    """Raised when an image appears to be corrupted or unreadable."""

    def __init__(self, source: str, reason: str = None):
        message = f"Corrupted or unreadable image: {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# OCR ERRORS
# =============================================================================

class OCRError(BillingError):
    """Base exception for OCR-related errors."""
    pass


class OCREngineNotAvailableError(OCRError):
    """Raised when the configured OCR engine is not available."""

    def __init__(self, engine_name: str):
        message = f"OCR engine not available: {engine_name}"
        details = {"engine": engine_name}
        super().__init__(message, details)


class OCRProcessingError(OCRError):
    """
    Raised when recognition fails or yields unusable text.

    Always recovered by the proof-upload workflow; never shown to users.
    """

    def __init__(self, source: str, reason: str = None):
        message = f"OCR processing failed for: {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# RECORD ERRORS
# =============================================================================

class RecordError(BillingError):
    """Base exception for student/invoice record errors."""
    http_status = 400


class ValidationError(RecordError):
    """Raised for malformed identifiers or payloads."""

    http_status = 400

    def __init__(self, field: str, value=None, reason: str = None):
        message = f"Validation failed for field '{field}'"
        if reason:
            message = f"{message}: {reason}"
        details = {"field": field, "value": value, "reason": reason}
        super().__init__(message, details)


class NotFoundError(RecordError):
    """Raised when a referenced invoice, student or upload does not exist."""

    http_status = 404

    def __init__(self, entity: str, identifier: str):
        message = f"{entity} not found: {identifier}"
        details = {"entity": entity, "id": identifier}
        super().__init__(message, details)


class ConflictError(RecordError):
    """Raised when a unique key is already taken and cannot be recovered."""

    http_status = 409

    def __init__(self, entity: str, key: str, value: str):
        message = f"Duplicate {entity} {key}: {value}"
        details = {"entity": entity, "key": key, "value": value}
        super().__init__(message, details)


# =============================================================================
# STORAGE ERRORS
# =============================================================================

class StorageError(BillingError):
    """Base exception for persistence errors."""
    http_status = 503


class DatabaseError(StorageError):
    """Raised when the database is unreachable or an operation fails."""

    def __init__(self, operation: str, reason: str = None):
        message = f"Database operation failed: {operation}"
        details = {"operation": operation, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# WORKFLOW ERRORS
# =============================================================================

class WorkflowError(BillingError):
    """Raised when a reviewer action is not allowed in the upload's state."""

    http_status = 409

    def __init__(self, upload_id: str, status: str, action: str):
        message = f"Cannot {action} upload {upload_id} in status '{status}'"
        details = {"upload_id": upload_id, "status": status, "action": action}
        super().__init__(message, details)


# Export all exceptions
__all__ = [
    'BillingError',
    'InputError',
    'CorruptedFileError',
    'OCRError',
    'OCREngineNotAvailableError',
    'OCRProcessingError',
    'RecordError',
    'ValidationError',
    'NotFoundError',
    'ConflictError',
    'StorageError',
    'DatabaseError',
    'WorkflowError',
]
