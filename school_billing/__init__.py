"""
School Billing Reconciliation - Source Package.

Invoice reconciliation and payment-proof reading for a school billing
back office.

Modules:
    - input_handler: Receipt image loading and preprocessing
    - ocr_engine: Text recognition behind a pluggable backend
    - postprocessor: Payment-field heuristics and authenticity scoring
    - records: Students, invoice snapshots and the invoice service
    - output_handler: SQLite persistence
    - workflow: Reviewer flow for payment-proof uploads

Architecture:
    Image → Preprocess → OCR → Heuristics → Proof Upload → Invoice Payload
                                                               ↓
                                  Student Resolution → Snapshot → Store
"""

__version__ = "1.0.0"

__all__ = [
    'input_handler',
    'ocr_engine',
    'postprocessor',
    'records',
    'output_handler',
    'workflow',
    'utils'
]
