"""
Student Resolver Module.

Maps the loosely-identified student on an invoice payload (identifier,
code and/or name) onto a canonical student record, creating one only
when both a code and a name are known and nothing matches.

Resolution order, first hit wins:
    1. Valid student identifier → lookup by id
    2. Student code → exact code lookup
    3. Full name → case-insensitive exact name lookup
    4. Neither code nor name → no student
    5. Code and name but no match → create (status Active)
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from school_billing.utils.logger import get_logger
from school_billing.utils.helpers import (
    generate_record_id,
    is_blank,
    is_valid_record_id,
    utc_timestamp,
)
from .models import Student

logger = get_logger(__name__)


def _text(value: Any) -> str:
    if is_blank(value) or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


@dataclass
class StudentReference:
    """
    Student identification carried by an invoice payload.

    Read from the top level first, then from the ``customer`` section:
        - id:   ``studentId`` / ``customer.studentId``
        - code: ``studentCode`` / ``customer.studentCode`` / ``customer.accountNo``
        - name: ``studentName`` / ``customer.name``
    """
    student_id: str = ""
    code: str = ""
    name: str = ""
    grade_year: str = ""
    section_class: str = ""

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'StudentReference':
        customer = payload.get('customer')
        if not isinstance(customer, dict):
            customer = {}

        def first(*values: Any) -> str:
            for value in values:
                text = _text(value)
                if text:
                    return text
            return ""

        return cls(
            student_id=first(payload.get('studentId'), customer.get('studentId')),
            code=first(payload.get('studentCode'), customer.get('studentCode'), customer.get('accountNo')),
            name=first(payload.get('studentName'), customer.get('name')),
            grade_year=first(payload.get('gradeYear'), customer.get('gradeYear')),
            section_class=first(payload.get('sectionClass'), customer.get('sectionClass')),
        )


class StudentResolver:
    """
    Finds or creates the student an invoice belongs to.

    The store must provide ``find_student_by_id``, ``find_student_by_code``,
    ``find_student_by_name`` and ``insert_student_if_absent``.

    Example:
        >>> resolver = StudentResolver(DatabaseHandler())
        >>> student = resolver.resolve({"customer": {"accountNo": "2024-0001", "name": "Maria Santos"}})
        >>> student.status
        'Active'
    """

    def __init__(self, store) -> None:
        self.store = store

    def resolve(self, payload: Dict[str, Any]) -> Optional[Student]:
        """
        Resolve the payload's student.

        Args:
            payload: Raw invoice payload.

        Returns:
            Matched or newly created Student, or None when the payload
            carries neither a code nor a name.

        Raises:
            ConflictError: If the code is taken and the holder cannot be read.
            DatabaseError: If the store is unreachable.
        """
        ref = StudentReference.from_payload(payload)

        if is_valid_record_id(ref.student_id):
            student = self.store.find_student_by_id(ref.student_id)
            if student:
                logger.debug(f"Resolved student by id: {student.id}")
                return student
        elif ref.student_id:
            logger.debug(f"Ignoring malformed student id: {ref.student_id!r}")

        if ref.code:
            student = self.store.find_student_by_code(ref.code)
            if student:
                logger.debug(f"Resolved student by code: {ref.code}")
                return student

        if ref.name:
            student = self.store.find_student_by_name(ref.name)
            if student:
                logger.debug(f"Resolved student by name: {ref.name}")
                return student

        if not ref.code or not ref.name:
            logger.debug("Not enough student information to create a record")
            return None

        now = utc_timestamp()
        candidate = Student(
            id=generate_record_id(),
            student_code=ref.code,
            full_name=ref.name,
            grade_year=ref.grade_year,
            section_class=ref.section_class,
            status="Active",
            created_at=now,
            updated_at=now,
        )
        student, _ = self.store.insert_student_if_absent(candidate)
        return student
