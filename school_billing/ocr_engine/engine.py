"""
Receipt OCR Orchestrator.

Drives one recognition pass per receipt image:
    preprocess → recognize → parse

Usage:
    from school_billing.ocr_engine import ReceiptOCR

    ocr = ReceiptOCR()
    fields = ocr.read("gcash_1250.jpg", progress_callback=print)
    print(fields.reference, fields.amount, fields.date)

Failures raise OCRProcessingError; callers fall back to filename
heuristics instead of surfacing the error.
"""

from typing import Callable, Optional

from config import get_config
from school_billing.input_handler import ImagePreprocessor
from school_billing.input_handler.image_processor import ImageSource
from school_billing.postprocessor import ReceiptFields, parse_receipt_text
from school_billing.utils.logger import get_logger
from school_billing.utils.exceptions import OCRProcessingError
from .ocr_result import OCRConfig, RecognitionBackend
from .tesseract_backend import TesseractBackend

logger = get_logger(__name__)

# Receives integer progress percentages 0-100
ProgressCallback = Callable[[int], None]


class ReceiptOCR:
    """
    Orchestrates preprocessing, recognition and text heuristics.

    The recognition backend is injected; when omitted, the engine named in
    ``ocr.engine`` is constructed (only ``tesseract`` is supported).

    Attributes:
        backend: Recognition backend instance
        config: OCRConfig passed to the backend
        preprocessor: ImagePreprocessor instance

    Example:
        >>> ocr = ReceiptOCR(backend=my_backend)
        >>> fields = ocr.read(image_bytes)
    """

    def __init__(
        self,
        backend: Optional[RecognitionBackend] = None,
        config: Optional[OCRConfig] = None,
        preprocessor: Optional[ImagePreprocessor] = None
    ) -> None:
        self.config = config or OCRConfig.from_settings()
        self.preprocessor = preprocessor or ImagePreprocessor()
        self.backend = backend or self._initialize_backend()

        logger.info(f"ReceiptOCR initialized with backend: {type(self.backend).__name__}")

    def _initialize_backend(self) -> RecognitionBackend:
        """Construct the configured backend."""
        backend_name = get_config("ocr.engine", "tesseract")

        if backend_name != "tesseract":
            logger.warning(
                f"Unknown backend '{backend_name}', falling back to tesseract"
            )

        return TesseractBackend()

    def read(
        self,
        image: ImageSource,
        progress_callback: Optional[ProgressCallback] = None,
        source_name: str = "image"
    ) -> ReceiptFields:
        """
        Recognize a receipt and parse its payment fields.

        Args:
            image: Receipt image (path, bytes, stream or PIL Image).
            progress_callback: Receives integer percentages, never decreasing.
            source_name: Label used in logs and errors.

        Returns:
            ReceiptFields parsed from the recognized text.

        Raises:
            OCRProcessingError: If preprocessing or recognition fails, or the
                engine returns no text.
        """
        reporter = _ProgressReporter(progress_callback)

        try:
            raster = self.preprocessor.preprocess(image)
            text = self.backend.recognize(raster, self.config, reporter.fraction)
        except OCRProcessingError:
            raise
        except Exception as e:
            logger.warning(f"Recognition failed for {source_name}: {e}")
            raise OCRProcessingError(source_name, str(e))

        if not text or not text.strip():
            logger.warning(f"Recognition returned no text for {source_name}")
            raise OCRProcessingError(source_name, "empty text")

        fields = parse_receipt_text(text)
        reporter.percent(100)

        logger.info(
            f"Read receipt {source_name}: "
            f"reference={fields.reference or 'N/A'}, amount={fields.amount or 'N/A'}, "
            f"date={fields.date or 'N/A'}"
        )
        return fields


class _ProgressReporter:
    """Converts engine fractions to monotonic integer percentages."""

    def __init__(self, callback: Optional[ProgressCallback]) -> None:
        self.callback = callback
        self.last = -1

    def fraction(self, value: float) -> None:
        self.percent(round((value or 0) * 100))

    def percent(self, value: int) -> None:
        value = max(0, min(100, int(value)))
        if self.callback is None or value <= self.last:
            return
        self.last = value
        self.callback(value)
