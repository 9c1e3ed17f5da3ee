"""
Receipt Fields Data Classes.

Structured output of the text heuristics: the payment fields read from a
receipt plus the authenticity assessment of the recognized text.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List


@dataclass
class AuthenticityReport:
    """
    Heuristic plausibility score for recognized receipt text.

    Attributes:
        score: 0-100, higher is more receipt-like
        is_authentic: score >= 60 and no critical warnings
        warnings: Human-readable findings
        critical: Findings that alone disqualify the receipt
    """
    score: int = 0
    is_authentic: bool = False
    warnings: List[str] = field(default_factory=list)
    critical: List[str] = field(default_factory=list)


@dataclass
class ReceiptFields:
    """
    Payment fields extracted from a receipt.

    Every field is a string and empty when nothing was found, so callers
    can fall back field by field with ``value or previous``.

    Example:
        >>> fields = ReceiptFields(reference="ABC123456", amount="1250", date="2024-05-16")
        >>> fields.missing_fields
        ['time', 'method']
    """
    reference: str = ""
    amount: str = ""
    date: str = ""
    time: str = ""
    method: str = ""
    authenticity: AuthenticityReport = field(default_factory=AuthenticityReport)

    @property
    def fields(self) -> Dict[str, str]:
        return {
            'reference': self.reference,
            'amount': self.amount,
            'date': self.date,
            'time': self.time,
            'method': self.method,
        }

    @property
    def missing_fields(self) -> List[str]:
        return [k for k, v in self.fields.items() if not v]

    @property
    def extracted_fields(self) -> Dict[str, str]:
        return {k: v for k, v in self.fields.items() if v}

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
