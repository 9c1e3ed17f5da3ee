"""
OCR Engine Module.

Recognizes text on receipt images and turns it into payment fields.

Components:
    - OCRConfig: whitelist, page segmentation mode and DPI hint
    - RecognitionBackend: the interface recognition engines implement
    - TesseractBackend: pytesseract implementation
    - ReceiptOCR: preprocess → recognize → parse orchestration
"""

from .engine import ReceiptOCR
from .ocr_result import OCRConfig, RecognitionBackend
from .tesseract_backend import TesseractBackend

__all__ = ['ReceiptOCR', 'OCRConfig', 'RecognitionBackend', 'TesseractBackend']
