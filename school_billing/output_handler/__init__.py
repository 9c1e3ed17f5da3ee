"""
Output Handler Module.

Persistence for students and invoices (SQLite document store).
"""

from .database_handler import DatabaseHandler

__all__ = ['DatabaseHandler']
