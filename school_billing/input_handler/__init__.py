"""
Input Handler Module.

Loads receipt images and normalizes them for OCR.

Supported formats: anything Pillow decodes (JPG, PNG, WEBP, TIFF, BMP, ...).
"""

from .image_processor import ImagePreprocessor, load_image

__all__ = ['ImagePreprocessor', 'load_image']
