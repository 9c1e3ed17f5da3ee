"""
Utility Module for the billing reconciliation system.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - Identifier, date and number helpers
"""

from .logger import setup_logger, get_logger
from .helpers import (
    ensure_directory,
    generate_record_id,
    is_valid_record_id,
    to_number,
    format_amount,
)

__all__ = [
    'setup_logger',
    'get_logger',
    'ensure_directory',
    'generate_record_id',
    'is_valid_record_id',
    'to_number',
    'format_amount',
]
