"""
OCR Configuration and Backend Interface.

Defines what the orchestrator hands to a recognition engine and the
narrow interface every engine implements, so orchestration and
heuristics can be exercised without a real OCR install.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from PIL import Image

from config import get_config

# Receives engine progress as a fraction in [0, 1]
ProgressSink = Callable[[float], None]


@dataclass(frozen=True)
class OCRConfig:
    """
    Recognition parameters for payment receipts.

    Attributes:
        char_whitelist: Characters the engine may emit
        psm: Page segmentation mode (6 = single uniform block of text)
        dpi: Resolution hint for the preprocessed raster
        language: Engine language code
        preserve_interword_spaces: Keep runs of spaces between words
    """
    char_whitelist: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789.-₱php "
    psm: int = 6
    dpi: int = 300
    language: str = "eng"
    preserve_interword_spaces: bool = True

    @classmethod
    def from_settings(cls) -> 'OCRConfig':
        """Build the configuration from the ``ocr.tesseract`` section."""
        defaults = cls()
        return cls(
            char_whitelist=get_config("ocr.tesseract.char_whitelist", defaults.char_whitelist),
            psm=int(get_config("ocr.tesseract.psm", defaults.psm)),
            dpi=int(get_config("ocr.tesseract.dpi", defaults.dpi)),
            language=get_config("ocr.tesseract.lang", defaults.language),
            preserve_interword_spaces=bool(
                get_config("ocr.tesseract.preserve_interword_spaces", defaults.preserve_interword_spaces)
            ),
        )


class RecognitionBackend(Protocol):
    """Anything that turns a raster into text."""

    def recognize(
        self,
        image: Image.Image,
        config: OCRConfig,
        progress: Optional[ProgressSink] = None
    ) -> str:
        """
        Recognize text in a preprocessed image.

        Implementations report progress as fractions in [0, 1] and raise
        on failure.
        """
        ...
