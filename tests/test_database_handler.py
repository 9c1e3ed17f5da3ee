import pytest

from school_billing.output_handler import DatabaseHandler
from school_billing.records import Student
from school_billing.utils.exceptions import DatabaseError
from school_billing.utils.helpers import generate_record_id


def make_student(code, name, created_at="2024-01-01T00:00:00.000+00:00"):
    return Student(
        id=generate_record_id(),
        student_code=code,
        full_name=name,
        created_at=created_at,
        updated_at=created_at,
    )


def test_insert_student_if_absent_reports_creation(db):
    first = make_student("2024-0001", "Maria Santos")
    stored, created = db.insert_student_if_absent(first)

    assert created
    assert stored.id == first.id

    again, created = db.insert_student_if_absent(make_student("2024-0001", "Someone Else"))

    assert not created
    assert again.id == first.id
    assert again.full_name == "Maria Santos"


def test_find_student_by_name_prefers_oldest(db):
    older = make_student("2024-0001", "Ana Reyes", "2024-01-01T00:00:00.000+00:00")
    newer = make_student("2024-0002", "ana reyes", "2024-02-01T00:00:00.000+00:00")
    db.insert_student_if_absent(newer)
    db.insert_student_if_absent(older)

    assert db.find_student_by_name("ANA REYES").id == older.id


def test_find_student_by_name_is_exact(db):
    db.insert_student_if_absent(make_student("2024-0001", "Ana Reyes\n"))
    db.insert_student_if_absent(make_student("2024-0002", "Anastasia Cruz"))

    assert db.find_student_by_name("Ana Reyes") is None
    assert db.find_student_by_name("Ana") is None


def test_lookups_return_none_when_missing(db):
    assert db.find_student_by_id("0" * 32) is None
    assert db.find_student_by_code("missing") is None
    assert db.find_student_by_name("Nobody") is None
    assert db.get_invoice("0" * 32) is None
    assert db.get_latest_invoice() is None
    assert db.list_invoices() == []


def test_unusable_path_raises_database_error(tmp_path):
    with pytest.raises(DatabaseError):
        DatabaseHandler(str(tmp_path))
