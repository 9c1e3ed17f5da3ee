"""
Receipt Validators Module.

Scores how much recognized text looks like a genuine payment receipt.
The score is advisory: reviewers still verify or reject every proof.

Checks:
    - Presence of amount, date, reference, time and payment method
    - Sender/recipient wording
    - Suspicious wording (watermark, sample, placeholder text)
    - Implausibly short text or excessive digit noise
    - Future-dated receipts
"""

import re
from datetime import date, datetime
from typing import Optional

from school_billing.utils.logger import get_logger
from .receipt_fields import AuthenticityReport, ReceiptFields

logger = get_logger(__name__)


class ReceiptValidator:
    """
    Heuristic authenticity scoring for receipt text.

    Example:
        >>> validator = ReceiptValidator()
        >>> report = validator.assess(text, fields)
        >>> report.is_authentic, report.score
        (True, 80)
    """

    PASS_SCORE = 60
    MIN_TEXT_LENGTH = 50
    MAX_DIGITS = 100

    # (weight, warning when missing)
    FIELD_WEIGHTS = {
        'amount': (20, "No amount found"),
        'date': (15, "No transaction date found"),
        'reference': (20, "No reference/transaction ID found"),
        'time': (10, "No transaction time found"),
        'method': (15, "No payment method found"),
    }

    PARTY_PATTERN = re.compile(r'\b(?:from|to|payee|recipient|sender|destination)\b', re.IGNORECASE)
    PROVIDER_PATTERN = re.compile(r'gcash|maya|bank|bdo|bpi|metrobank|rcbc|remit|transfer', re.IGNORECASE)
    WATERMARK_PATTERN = re.compile(r'\b(?:watermark|draft|fake|template|sample)\b', re.IGNORECASE)
    PLACEHOLDER_PATTERN = re.compile(r'lorem ipsum|dolor sit|consectetur', re.IGNORECASE)

    def assess(
        self,
        text: str,
        fields: ReceiptFields,
        ocr_confidence: Optional[float] = None,
        today: Optional[date] = None
    ) -> AuthenticityReport:
        """
        Score recognized text against the fields extracted from it.

        Args:
            text: Raw OCR text.
            fields: Fields already extracted from the same text.
            ocr_confidence: Optional engine confidence (0-100).
            today: Reference date for the future-date check.

        Returns:
            AuthenticityReport with score clamped to 0-100.
        """
        text = text or ""
        report = AuthenticityReport()
        score = 0

        for name, (weight, warning) in self.FIELD_WEIGHTS.items():
            if getattr(fields, name):
                score += weight
            else:
                report.warnings.append(warning)

        if self.PARTY_PATTERN.search(text):
            score += 10
        else:
            report.warnings.append("No sender/recipient information found")

        if self.PROVIDER_PATTERN.search(text):
            score += 15

        if ocr_confidence is not None:
            if ocr_confidence >= 85:
                score += 10
            elif ocr_confidence < 40:
                score -= 10
                report.warnings.append("OCR confidence is low")

        if len(re.findall(r'\d', text)) > self.MAX_DIGITS:
            score -= 15
            report.critical.append("Excessive numbers detected (possible non-receipt)")

        if self.WATERMARK_PATTERN.search(text):
            score -= 30
            report.critical.append("Suspicious text found (watermark/draft/fake/template)")

        if self.PLACEHOLDER_PATTERN.search(text):
            score -= 50
            report.critical.append("Placeholder text detected")

        if len(text.strip()) < self.MIN_TEXT_LENGTH:
            score -= 20
            report.warnings.append("Very short document (possible non-receipt)")

        score += self._date_penalty(fields.date, today or date.today(), report)

        report.score = max(0, min(100, score))
        report.is_authentic = report.score >= self.PASS_SCORE and not report.critical

        logger.debug(
            f"Authenticity score {report.score} "
            f"({len(report.warnings)} warnings, {len(report.critical)} critical)"
        )
        return report

    def _date_penalty(self, iso_date: str, today: date, report: AuthenticityReport) -> int:
        """Penalize future-dated and year-old receipts."""
        if not iso_date:
            return 0

        try:
            receipt_date = datetime.strptime(iso_date, "%Y-%m-%d").date()
        except ValueError:
            return 0

        age_days = (today - receipt_date).days
        if age_days < 0:
            report.critical.append("Receipt is from a future date")
            return -40
        if age_days > 365:
            report.warnings.append("Receipt is more than 1 year old")
            return -5
        return 0
