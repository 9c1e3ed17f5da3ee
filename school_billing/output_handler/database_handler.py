"""
Database Handler Module.

SQLite-backed document store for students and invoices. Invoice payloads
are stored as JSON documents next to their derived snapshot columns.

Features:
    - Automatic schema creation
    - Find by id, exact field and case-insensitive exact name
    - Atomic insert-if-absent for students (unique student code)
    - Unique invoice codes, surfaced as ConflictError
"""

import json
import re
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from config import ConfigurationManager, get_config
from school_billing.records.models import InvoiceRecord, InvoiceSnapshot, Student
from school_billing.utils.logger import get_logger
from school_billing.utils.helpers import ensure_directory
from school_billing.utils.exceptions import ConflictError, DatabaseError

logger = get_logger(__name__)


def _regexp(pattern: str, value: Optional[str]) -> bool:
    """SQLite REGEXP implementation (pattern first, as SQLite passes it)."""
    return value is not None and re.search(pattern, value) is not None


class DatabaseHandler:
    """
    Persistence boundary for students and invoices.

    Each operation opens its own connection, so a handler may be shared
    across threads.

    Attributes:
        db_path: Path to the SQLite database file
        students_table: Name of the students table
        invoices_table: Name of the invoices table

    Example:
        >>> db = DatabaseHandler("data/school_billing.db")
        >>> student = db.find_student_by_code("2024-0001")
    """

    def __init__(self, db_path: Optional[str] = None) -> None:
        """
        Initialize the database handler.

        Args:
            db_path: Path to database file. If None, uses configuration.
        """
        database = ConfigurationManager().section("database")
        if db_path:
            self.db_path = Path(db_path)
        else:
            data_dir = Path(get_config("paths.data_dir", "data"))
            self.db_path = data_dir / database.get("name", "school_billing.db")

        self.students_table = database.get("students_table", "students")
        self.invoices_table = database.get("invoices_table", "invoices")
        self.list_limit = database.get("list_limit", 50)

        ensure_directory(self.db_path.parent)
        self._create_tables()

        logger.info(f"DatabaseHandler initialized (db: {self.db_path})")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=30, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.create_function("REGEXP", 2, _regexp, deterministic=True)
        return conn

    def _create_tables(self) -> None:
        """Create the required tables and indexes."""
        statements = [
            f"""
            CREATE TABLE IF NOT EXISTS {self.students_table} (
                id TEXT PRIMARY KEY,
                student_code TEXT NOT NULL UNIQUE,
                full_name TEXT NOT NULL,
                grade_year TEXT DEFAULT '',
                section_class TEXT DEFAULT '',
                status TEXT DEFAULT 'Active',
                created_at TEXT,
                updated_at TEXT
            )
            """,
            f"""
            CREATE TABLE IF NOT EXISTS {self.invoices_table} (
                id TEXT PRIMARY KEY,
                invoice_code TEXT UNIQUE,
                student_id TEXT,
                data TEXT NOT NULL,
                amount_due REAL NOT NULL DEFAULT 0,
                amount_paid REAL NOT NULL DEFAULT 0,
                balance REAL NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'Draft',
                issued_at TEXT,
                due_at TEXT,
                created_at TEXT,
                updated_at TEXT
            )
            """,
            f"""
            CREATE INDEX IF NOT EXISTS idx_{self.invoices_table}_student
            ON {self.invoices_table} (student_id)
            """,
            f"""
            CREATE INDEX IF NOT EXISTS idx_{self.invoices_table}_updated
            ON {self.invoices_table} (updated_at)
            """,
        ]

        try:
            with closing(self._connect()) as conn:
                for statement in statements:
                    conn.execute(statement)
            logger.debug("Database tables created/verified")
        except sqlite3.Error as e:
            raise DatabaseError("create tables", str(e))

    def _fetch_one(self, operation: str, query: str, params: Tuple) -> Optional[Dict[str, Any]]:
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(query, params).fetchone()
            return dict(row) if row else None
        except sqlite3.Error as e:
            raise DatabaseError(operation, str(e))

    # =========================================================================
    # STUDENTS
    # =========================================================================

    def find_student_by_id(self, student_id: str) -> Optional[Student]:
        row = self._fetch_one(
            "find_student_by_id",
            f"SELECT * FROM {self.students_table} WHERE id = ?",
            (student_id,)
        )
        return Student.from_row(row) if row else None

    def find_student_by_code(self, student_code: str) -> Optional[Student]:
        row = self._fetch_one(
            "find_student_by_code",
            f"SELECT * FROM {self.students_table} WHERE student_code = ?",
            (student_code,)
        )
        return Student.from_row(row) if row else None

    def find_student_by_name(self, full_name: str) -> Optional[Student]:
        """
        Case-insensitive exact match on the full name.

        The name is escaped and anchored, so "Ana" never matches "Anastasia".
        When several students share the name, the oldest record wins.
        """
        pattern = rf"(?i)\A{re.escape(full_name)}\Z"
        row = self._fetch_one(
            "find_student_by_name",
            f"""
            SELECT * FROM {self.students_table}
            WHERE full_name REGEXP ?
            ORDER BY created_at ASC, rowid ASC
            LIMIT 1
            """,
            (pattern,)
        )
        return Student.from_row(row) if row else None

    def insert_student_if_absent(self, student: Student) -> Tuple[Student, bool]:
        """
        Insert a student unless its code is already taken.

        The insert and the read-back run in one write transaction, so the
        returned row is the one holding the code whether this call or a
        concurrent one created it.

        Args:
            student: Student to create.

        Returns:
            Tuple of (stored student, whether this call created it).

        Raises:
            ConflictError: If the code is taken but the row cannot be read back.
            DatabaseError: If the database operation fails.
        """
        insert_sql = f"""
        INSERT INTO {self.students_table} (
            id, student_code, full_name, grade_year, section_class,
            status, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(student_code) DO NOTHING
        """
        values = (
            student.id, student.student_code, student.full_name,
            student.grade_year, student.section_class, student.status,
            student.created_at, student.updated_at,
        )

        try:
            with closing(self._connect()) as conn:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    created = conn.execute(insert_sql, values).rowcount == 1
                    row = conn.execute(
                        f"SELECT * FROM {self.students_table} WHERE student_code = ?",
                        (student.student_code,)
                    ).fetchone()
                    conn.execute("COMMIT")
                except BaseException:
                    conn.execute("ROLLBACK")
                    raise
        except sqlite3.Error as e:
            raise DatabaseError("insert_student", str(e))

        if row is None:
            raise ConflictError("student", "studentCode", student.student_code)

        if created:
            logger.info(f"Created student {student.student_code} ({student.full_name})")
        else:
            logger.info(f"Student code {student.student_code} already exists, reusing it")

        return Student.from_row(dict(row)), created

    def count_students(self) -> int:
        row = self._fetch_one(
            "count_students",
            f"SELECT COUNT(*) AS total FROM {self.students_table}",
            ()
        )
        return row['total']

    # =========================================================================
    # INVOICES
    # =========================================================================

    def _invoice_values(self, record: InvoiceRecord) -> Dict[str, Any]:
        snapshot = record.snapshot
        return {
            'id': record.id,
            'invoice_code': snapshot.invoice_code,
            'student_id': record.student_id,
            'data': json.dumps(record.data, ensure_ascii=False),
            'amount_due': snapshot.amount_due,
            'amount_paid': snapshot.amount_paid,
            'balance': snapshot.balance,
            'status': snapshot.status,
            'issued_at': snapshot.issued_at,
            'due_at': snapshot.due_at,
            'created_at': record.created_at,
            'updated_at': record.updated_at,
        }

    def _write_invoice(self, operation: str, query: str, record: InvoiceRecord) -> int:
        try:
            with closing(self._connect()) as conn:
                cursor = conn.execute(query, self._invoice_values(record))
                return cursor.rowcount
        except sqlite3.IntegrityError as e:
            if 'invoice_code' in str(e):
                raise ConflictError("invoice", "invoiceCode", record.invoice_code)
            raise DatabaseError(operation, str(e))
        except sqlite3.Error as e:
            raise DatabaseError(operation, str(e))

    def insert_invoice(self, record: InvoiceRecord) -> None:
        """
        Insert a new invoice.

        Raises:
            ConflictError: If the invoice code is already used.
            DatabaseError: If the database operation fails.
        """
        self._write_invoice("insert_invoice", f"""
            INSERT INTO {self.invoices_table} (
                id, invoice_code, student_id, data, amount_due, amount_paid,
                balance, status, issued_at, due_at, created_at, updated_at
            ) VALUES (
                :id, :invoice_code, :student_id, :data, :amount_due, :amount_paid,
                :balance, :status, :issued_at, :due_at, :created_at, :updated_at
            )
        """, record)
        logger.debug(f"Inserted invoice {record.id}")

    def update_invoice(self, record: InvoiceRecord) -> bool:
        """
        Replace an invoice's payload and snapshot.

        Returns:
            True if a row was updated, False if the id does not exist.
        """
        updated = self._write_invoice("update_invoice", f"""
            UPDATE {self.invoices_table} SET
                invoice_code = :invoice_code,
                student_id = :student_id,
                data = :data,
                amount_due = :amount_due,
                amount_paid = :amount_paid,
                balance = :balance,
                status = :status,
                issued_at = :issued_at,
                due_at = :due_at,
                updated_at = :updated_at
            WHERE id = :id
        """, record)
        logger.debug(f"Updated invoice {record.id} ({updated} row)")
        return updated > 0

    def _record_from_row(self, row: Dict[str, Any]) -> InvoiceRecord:
        student = None
        if row.get('student_id'):
            student = self.find_student_by_id(row['student_id'])

        snapshot = InvoiceSnapshot(
            amount_due=row['amount_due'],
            amount_paid=row['amount_paid'],
            balance=row['balance'],
            status=row['status'],
            issued_at=row.get('issued_at'),
            due_at=row.get('due_at'),
            invoice_code=row.get('invoice_code'),
        )
        return InvoiceRecord(
            id=row['id'],
            data=json.loads(row['data']),
            _snapshot=snapshot,
            student=student,
            student_id=row.get('student_id'),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
        )

    def get_invoice(self, invoice_id: str) -> Optional[InvoiceRecord]:
        row = self._fetch_one(
            "get_invoice",
            f"SELECT * FROM {self.invoices_table} WHERE id = ?",
            (invoice_id,)
        )
        return self._record_from_row(row) if row else None

    def get_latest_invoice(self) -> Optional[InvoiceRecord]:
        row = self._fetch_one(
            "get_latest_invoice",
            f"""
            SELECT * FROM {self.invoices_table}
            ORDER BY updated_at DESC, rowid DESC
            LIMIT 1
            """,
            ()
        )
        return self._record_from_row(row) if row else None

    def list_invoices(self, limit: Optional[int] = None) -> List[InvoiceRecord]:
        """Most recently updated invoices first."""
        query = f"""
        SELECT * FROM {self.invoices_table}
        ORDER BY updated_at DESC, rowid DESC
        LIMIT ?
        """
        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(query, (limit or self.list_limit,)).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError("list_invoices", str(e))

        return [self._record_from_row(dict(row)) for row in rows]
