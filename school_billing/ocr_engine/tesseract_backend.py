"""
Tesseract OCR Backend.

Recognition backend built on pytesseract.

Requirements:
    - Tesseract OCR installed on the system
    - pytesseract Python package
"""

import time
from typing import Optional

import pytesseract
from PIL import Image

from school_billing.utils.logger import get_logger
from school_billing.utils.exceptions import OCREngineNotAvailableError
from .ocr_result import OCRConfig, ProgressSink

logger = get_logger(__name__)


class TesseractBackend:
    """
    Tesseract implementation of the recognition backend.

    Tesseract runs as a subprocess and exposes no incremental progress, so
    progress is reported once when recognition starts and once when it
    finishes.

    Example:
        >>> backend = TesseractBackend()
        >>> text = backend.recognize(image, OCRConfig())
    """

    def __init__(self) -> None:
        """Initialize the backend and confirm the Tesseract binary is reachable."""
        try:
            self.version = str(pytesseract.get_tesseract_version())
        except Exception as e:
            raise OCREngineNotAvailableError(
                f"Tesseract OCR (not installed or not in PATH): {e}"
            )

        logger.info(f"Tesseract version: {self.version}")

    @staticmethod
    def build_config(config: OCRConfig) -> str:
        """
        Build the Tesseract command-line configuration string.

        Spaces cannot be passed inside ``tessedit_char_whitelist``; word
        spacing is kept through ``preserve_interword_spaces`` instead.

        Example:
            >>> TesseractBackend.build_config(OCRConfig())
            '--psm 6 --dpi 300 -c tessedit_char_whitelist=ABC...₱ph -c preserve_interword_spaces=1'
        """
        whitelist = ''.join(dict.fromkeys(config.char_whitelist.replace(' ', '')))

        config_parts = [
            f"--psm {config.psm}",
            f"--dpi {config.dpi}",
        ]
        if whitelist:
            config_parts.append(f"-c tessedit_char_whitelist={whitelist}")
        if config.preserve_interword_spaces:
            config_parts.append("-c preserve_interword_spaces=1")

        return ' '.join(config_parts)

    def recognize(
        self,
        image: Image.Image,
        config: OCRConfig,
        progress: Optional[ProgressSink] = None
    ) -> str:
        """
        Recognize text in a preprocessed image.

        Args:
            image: Preprocessed PIL Image.
            config: Recognition parameters.
            progress: Optional sink for progress fractions.

        Returns:
            Recognized text (may be empty).
        """
        start_time = time.time()
        tesseract_config = self.build_config(config)

        if progress:
            progress(0.0)

        logger.debug(f"Running Tesseract OCR (config: {tesseract_config})")
        text = pytesseract.image_to_string(
            image,
            lang=config.language,
            config=tesseract_config
        )

        if progress:
            progress(1.0)

        logger.info(
            f"OCR completed: {len(text.strip())} characters "
            f"({time.time() - start_time:.2f}s)"
        )
        return text
