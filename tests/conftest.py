"""Shared fixtures: temporary store, fake recognition backend, generated images."""

import io

import pytest
from PIL import Image

from config import ConfigurationManager
from school_billing.ocr_engine import ReceiptOCR
from school_billing.output_handler import DatabaseHandler

RECEIPT_TEXT = "Reference Number: ABC123456 Amount: PHP 1,250.00 Date: May 16, 2024"


class FakeBackend:
    """Recognition backend returning canned text and replaying progress fractions."""

    def __init__(self, text=RECEIPT_TEXT, error=None, steps=(0.0, 1.0), before_return=None):
        self.text = text
        self.error = error
        self.steps = steps
        self.before_return = before_return
        self.calls = 0

    def recognize(self, image, config, progress=None):
        self.calls += 1
        for step in self.steps:
            if progress:
                progress(step)
        if self.before_return:
            self.before_return()
        if self.error:
            raise self.error
        return self.text


def make_image_bytes(size=(120, 60), color=(255, 255, 255), mode="RGB", fmt="PNG", **save_kwargs):
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, fmt, **save_kwargs)
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def fresh_config():
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()


@pytest.fixture
def db(tmp_path):
    return DatabaseHandler(str(tmp_path / "billing.db"))


@pytest.fixture
def image_bytes():
    return make_image_bytes()


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def receipt_ocr(fake_backend):
    return ReceiptOCR(backend=fake_backend)
