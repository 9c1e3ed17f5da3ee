import json
import logging
from unittest.mock import patch

import pytest

from main import main
from school_billing.utils.logger import ROOT_LOGGER_NAME

from conftest import FakeBackend, make_image_bytes


@pytest.fixture(autouse=True)
def detach_cli_logging():
    yield
    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_logger.handlers.clear()
    app_logger.propagate = True


def run(capsys, *argv):
    code = main(list(argv))
    return code, capsys.readouterr().out


def test_save_and_show_invoice(tmp_path, capsys):
    db_path = str(tmp_path / "cli.db")
    payload_path = tmp_path / "invoice.json"
    payload_path.write_text(json.dumps({
        "data": {
            "customer": {"accountNo": "2024-0001", "name": "Maria Santos"},
            "amountDue": 5000,
            "payments": [{"amount": 2000}],
        }
    }))

    code, out = run(capsys, "--db", db_path, "save-invoice", str(payload_path))
    saved = json.loads(out)

    assert code == 0
    assert saved["status"] == "Partially Paid"
    assert saved["balance"] == 3000.0

    code, out = run(capsys, "--db", db_path, "show-invoice", "latest")
    assert code == 0
    assert json.loads(out)["id"] == saved["id"]

    payload_path.write_text(json.dumps({"amountDue": 5000, "amountPaid": 5000}))
    code, out = run(capsys, "--db", db_path, "save-invoice", str(payload_path), "--id", saved["id"])
    assert code == 0
    assert json.loads(out)["status"] == "Paid"


def test_show_unknown_invoice_fails(tmp_path, capsys):
    code, _ = run(capsys, "--db", str(tmp_path / "cli.db"), "show-invoice", "0" * 32)
    assert code == 1


def test_read_receipt_prints_fields(tmp_path, capsys):
    image = tmp_path / "gcash_20240516.png"
    image.write_bytes(make_image_bytes())

    with patch("school_billing.ocr_engine.engine.TesseractBackend", FakeBackend):
        code, out = run(capsys, "read-receipt", str(image))

    [upload] = json.loads(out)
    assert code == 0
    assert upload["fileName"] == "gcash_20240516.png"
    assert upload["reference"] == "ABC123456"
    assert upload["amount"] == "1250"
    assert upload["status"] == "Pending"


def test_read_receipt_missing_file(tmp_path, capsys):
    code, _ = run(capsys, "read-receipt", str(tmp_path / "nope.png"))
    assert code == 1


def test_errors_are_reported_as_json_on_stderr(tmp_path, capsys):
    code = main(["--db", str(tmp_path / "cli.db"), "show-invoice", "INV-1"])
    err = capsys.readouterr().err

    assert code == 1
    assert '"error": "ValidationError"' in err
