import pytest

from config import ConfigurationManager, get_config
from school_billing.utils.exceptions import ConflictError, NotFoundError, WorkflowError
from school_billing.utils.helpers import format_amount, is_valid_record_id, to_number


@pytest.mark.parametrize("value, expected", [
    (1250, 1250.0),
    ("1,250.00", 1250.0),
    (" 42 ", 42.0),
    ("", None),
    ("abc", None),
    (True, None),
    (None, None),
    (float("nan"), None),
    ({"amount": 1}, None),
])
def test_to_number(value, expected):
    assert to_number(value) == expected


def test_format_amount():
    assert format_amount(1250.0) == "1250"
    assert format_amount(999.5) == "999.5"
    assert format_amount(10.25) == "10.25"


def test_is_valid_record_id():
    assert is_valid_record_id("0f8c2b6c3e0a4f7b9d1e2a3b4c5d6e7f")
    assert not is_valid_record_id("0F8C2B6C3E0A4F7B9D1E2A3B4C5D6E7F")
    assert not is_valid_record_id(12345)


def test_config_dot_notation():
    assert get_config("ocr.tesseract.psm") == 6
    assert get_config("preprocess.threshold") == 150
    assert get_config("missing.key", "fallback") == "fallback"


def test_config_env_override(tmp_path, monkeypatch):
    custom = tmp_path / "settings.yaml"
    custom.write_text("preprocess:\n  threshold: 99\npaths:\n  data_dir: /srv/billing\n")
    monkeypatch.setenv("SCHOOL_BILLING_CONFIG", str(custom))
    ConfigurationManager.reset()

    assert get_config("preprocess.threshold") == 99
    assert get_config("paths.data_dir") == "/srv/billing"


def test_error_http_statuses():
    assert NotFoundError("Invoice", "x").http_status == 404
    assert ConflictError("invoice", "invoiceCode", "A").http_status == 409
    assert WorkflowError("u1", "Verified", "reject").details["action"] == "reject"


def test_data_dir_override_places_default_database(tmp_path, monkeypatch):
    from school_billing.output_handler import DatabaseHandler

    monkeypatch.setenv("SCHOOL_BILLING_DATA_DIR", str(tmp_path / "store"))
    ConfigurationManager.reset()

    handler = DatabaseHandler()

    assert handler.db_path == tmp_path / "store" / "school_billing.db"
    assert handler.db_path.exists()
