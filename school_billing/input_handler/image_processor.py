"""
Image Preprocessor Module.

Turns an arbitrary photo of a payment receipt into a fixed-form raster
for text recognition:
    - EXIF orientation correction
    - RGB conversion (alpha flattened onto white)
    - Downscaling so the longer side fits the configured maximum
    - Luminance, linear contrast stretch and fixed-threshold binarization

The output is deterministic for identical input bytes.
"""

import io
from pathlib import Path
from typing import BinaryIO, Union

import numpy as np
from PIL import Image, ImageOps

from config import get_config
from school_billing.utils.logger import get_logger
from school_billing.utils.exceptions import CorruptedFileError

logger = get_logger(__name__)

ImageSource = Union[str, Path, bytes, BinaryIO, Image.Image]

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


def load_image(source: ImageSource) -> Image.Image:
    """
    Open an image from a path, raw bytes, a binary stream or a PIL image.

    Args:
        source: Image input in any supported form.

    Returns:
        Fully loaded PIL Image.

    Raises:
        CorruptedFileError: If the input cannot be decoded as an image.
    """
    if isinstance(source, Image.Image):
        return source

    label = str(source) if isinstance(source, (str, Path)) else type(source).__name__
    try:
        if isinstance(source, bytes):
            source = io.BytesIO(source)
        image = Image.open(source)
        image.load()
        return image
    except Exception as e:
        logger.error(f"Failed to load image {label}: {e}")
        raise CorruptedFileError(label, str(e))


class ImagePreprocessor:
    """
    Normalizes receipt photos for OCR.

    Attributes:
        max_dimension: Upper bound for the longer side, in pixels
        midpoint: Contrast stretch pivot
        gain: Contrast stretch factor
        threshold: Binarization cut-off (values above become white)
        auto_orient: Whether to apply EXIF orientation first

    Example:
        >>> preprocessor = ImagePreprocessor()
        >>> raster = preprocessor.preprocess("gcash_1250.jpg")
        >>> raster.mode
        'RGB'
    """

    def __init__(self) -> None:
        """Initialize the preprocessor from configuration."""
        self.max_dimension = get_config("preprocess.max_dimension", 1800)
        self.midpoint = get_config("preprocess.contrast_midpoint", 128)
        self.gain = get_config("preprocess.contrast_gain", 1.3)
        self.threshold = get_config("preprocess.threshold", 150)
        self.auto_orient = get_config("input.image.auto_orient", True)

        logger.debug(
            f"ImagePreprocessor initialized (max={self.max_dimension}px, "
            f"gain={self.gain}, threshold={self.threshold})"
        )

    def preprocess(self, source: ImageSource) -> Image.Image:
        """
        Apply the full preprocessing pipeline.

        Processing steps:
            1. Fix orientation from EXIF
            2. Convert to RGB
            3. Downscale if the longer side exceeds the maximum
            4. Grayscale, contrast stretch, binarize

        Args:
            source: Image input (path, bytes, stream or PIL Image).

        Returns:
            New RGB image whose pixels are pure black or pure white.
        """
        image = load_image(source)
        original_size = image.size

        if self.auto_orient:
            image = self._fix_orientation(image)

        image = self._convert_to_rgb(image)
        image = self._downscale(image)
        image = self._binarize(image)

        logger.debug(
            f"Preprocessed image {original_size[0]}x{original_size[1]} "
            f"-> {image.width}x{image.height}"
        )
        return image

    def _fix_orientation(self, image: Image.Image) -> Image.Image:
        """Rotate/flip according to the EXIF Orientation tag, if any."""
        try:
            return ImageOps.exif_transpose(image)
        except Exception as e:
            logger.debug(f"Could not fix orientation: {e}")
            return image

    def _convert_to_rgb(self, image: Image.Image) -> Image.Image:
        """
        Convert image to RGB mode.

        Transparent regions are composited onto white so they read as paper.
        """
        if image.mode == 'RGB':
            return image

        if image.mode in ('RGBA', 'LA') or (image.mode == 'P' and 'transparency' in image.info):
            rgba = image.convert('RGBA')
            background = Image.new('RGB', rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[3])
            return background

        return image.convert('RGB')

    def _downscale(self, image: Image.Image) -> Image.Image:
        """
        Shrink the image so its longer side is at most ``max_dimension``.

        Never upscales; aspect ratio is preserved and each side stays >= 1px.
        """
        width, height = image.size
        scale = min(1.0, self.max_dimension / max(width, height))
        if scale >= 1.0:
            return image

        new_width = max(1, round(width * scale))
        new_height = max(1, round(height * scale))

        logger.debug(f"Downscaling {width}x{height} to {new_width}x{new_height}")
        return image.resize((new_width, new_height), Image.LANCZOS)

    def _binarize(self, image: Image.Image) -> Image.Image:
        """
        Luminance, linear contrast stretch around the midpoint, then threshold.

        The same 0/255 value is written to all three channels.
        """
        pixels = np.asarray(image, dtype=np.float64)
        gray = pixels[..., :3] @ LUMA_WEIGHTS
        contrasted = np.clip((gray - self.midpoint) * self.gain + self.midpoint, 0, 255)
        binary = np.where(contrasted > self.threshold, 255, 0).astype(np.uint8)

        return Image.fromarray(np.stack([binary, binary, binary], axis=-1), 'RGB')
