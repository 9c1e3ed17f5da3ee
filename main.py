#!/usr/bin/env python3
"""
School Billing Reconciliation - Main Entry Point.

Command-line access to receipt reading and invoice storage.

Usage:
    Command Line:
        python main.py read-receipt receipts/gcash_1250.jpg
        python main.py save-invoice invoice.json
        python main.py save-invoice invoice.json --id 3f2a...
        python main.py show-invoice latest

    Python:
        from main import read_receipts
        uploads = read_receipts(["receipts/gcash_1250.jpg"])
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import ConfigurationManager
from school_billing.utils.exceptions import BillingError
from school_billing.utils.logger import get_logger, setup_logger_from_config


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="school-billing",
        description="School billing invoice reconciliation and payment-proof reading",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Read payment proofs:
        school-billing read-receipt gcash_1250.jpg bdo_20240516.png

    Store an invoice (prints the canonical record):
        school-billing save-invoice invoice.json

    Show the most recently updated invoice:
        school-billing show-invoice latest
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLite database path (default: data_dir/database.name from config)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    read_parser = commands.add_parser("read-receipt", help="Read payment fields from receipt images")
    read_parser.add_argument("images", nargs="+", help="Receipt image files")

    save_parser = commands.add_parser("save-invoice", help="Create or update an invoice from JSON")
    save_parser.add_argument("payload", help="JSON file holding the invoice payload")
    save_parser.add_argument("--id", dest="invoice_id", default=None, help="Update this invoice instead")

    show_parser = commands.add_parser("show-invoice", help="Print a stored invoice")
    show_parser.add_argument("invoice_id", help="Invoice id, or 'latest'")

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """Load configuration and set up logging."""
    if args.config:
        ConfigurationManager.reset()
    config = ConfigurationManager(args.config)

    setup_logger_from_config("DEBUG" if args.debug else None)
    return config


def read_receipts(images: List[str]) -> List[Dict[str, Any]]:
    """
    Read receipt images the way the reviewer screen does.

    Fields are seeded from each filename and refreshed from OCR where the
    engine finds them.

    Example:
        >>> read_receipts(["gcash_1250.jpg"])[0]["amount"]
        '1250'
    """
    from school_billing.workflow import ProofUploadWorkflow

    workflow = ProofUploadWorkflow()
    selected = workflow.select_files(images)
    workflow.read_all()

    return [workflow.get(upload.id).to_dict() for upload in selected]


def save_invoice(payload_path: str, invoice_id: Optional[str], db_path: Optional[str]) -> Dict[str, Any]:
    """Create (or update, when ``invoice_id`` is given) an invoice from a JSON file."""
    from school_billing.output_handler import DatabaseHandler
    from school_billing.records.invoice_service import InvoiceService

    with open(payload_path, 'r', encoding='utf-8') as f:
        body = json.load(f)

    service = InvoiceService(DatabaseHandler(db_path))
    if invoice_id:
        record = service.update(invoice_id, body)
    else:
        record = service.create(body)
    return record.to_dict()


def show_invoice(invoice_id: str, db_path: Optional[str]) -> Dict[str, Any]:
    """Return a stored invoice, or the most recently updated one for ``latest``."""
    from school_billing.output_handler import DatabaseHandler
    from school_billing.records.invoice_service import InvoiceService

    service = InvoiceService(DatabaseHandler(db_path))
    record = service.latest() if invoice_id == "latest" else service.get(invoice_id)
    return record.to_dict()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, 1 for errors, 130 when interrupted).
    """
    args = parse_arguments(argv)

    try:
        initialize_system(args)
        logger = get_logger(__name__)

        if args.command == "read-receipt":
            missing = [p for p in args.images if not Path(p).is_file()]
            if missing:
                raise FileNotFoundError(f"Input file not found: {', '.join(missing)}")
            result: Any = read_receipts(args.images)
        elif args.command == "save-invoice":
            result = save_invoice(args.payload, args.invoice_id, args.db)
        else:
            result = show_invoice(args.invoice_id, args.db)

        logger.debug(f"Command {args.command} completed")
        print(json.dumps(result, indent=2, ensure_ascii=False))
        return 0

    except BillingError as e:
        print(json.dumps(e.to_dict(), ensure_ascii=False, default=str), file=sys.stderr)
        return 1

    except (FileNotFoundError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
