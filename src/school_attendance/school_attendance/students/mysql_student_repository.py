from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone, in_placeholders
from .model import Student
from .repository import StudentRepository

_COLUMNS = "id, student_id AS student_code, lrn, first_name, last_name, is_active"


def _to_student(row: dict) -> Student:
    return Student(
        id=int(row["id"]),
        student_code=row["student_code"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        lrn=row.get("lrn"),
        is_active=as_bool(row.get("is_active", 1)),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE id=%s", (int(student_id),))
            row = fetchone(cur)
            return _to_student(row) if row else None

    def get_many(self, student_ids: Sequence[int]) -> Sequence[Student]:
        ids = [int(i) for i in student_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM students WHERE id IN ({in_placeholders(ids)})",
                tuple(ids),
            )
            return [_to_student(r) for r in fetchall(cur)]
