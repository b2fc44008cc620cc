from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from ..core.enums import EnrollmentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, db_transaction, fetchall, fetchone
from .model import Enrollment
from .repository import EnrollmentRepository, EnrollmentUnitOfWork

_SELECT = """
    SELECT sc.id, sc.student_id, sc.class_id, sc.enrolled_by, sc.enrolled_at, sc.is_active,
           sc.enrollment_status, sc.enrollment_type, sc.status_changed_at, sc.status_changed_by,
           sc.status_reason, sc.reactivated_at,
           c.grade_level, c.section, c.school_year_id, sy.name AS school_year_name
    FROM student_classes sc
    JOIN classes c ON c.id = sc.class_id
    JOIN school_years sy ON sy.id = c.school_year_id
"""


def _to_enrollment(row: dict) -> Enrollment:
    return Enrollment(
        id=int(row["id"]),
        student_id=int(row["student_id"]),
        class_id=int(row["class_id"]),
        enrolled_by=int(row["enrolled_by"]) if row.get("enrolled_by") is not None else None,
        enrolled_at=row.get("enrolled_at"),
        is_active=as_bool(row.get("is_active")),
        enrollment_status=EnrollmentStatus(row.get("enrollment_status") or EnrollmentStatus.ACTIVE.value),
        enrollment_type=row.get("enrollment_type") or "regular",
        status_changed_at=row.get("status_changed_at"),
        status_changed_by=row.get("status_changed_by"),
        status_reason=row.get("status_reason"),
        reactivated_at=row.get("reactivated_at"),
        grade_level=row.get("grade_level"),
        section=row.get("section"),
        school_year_id=int(row["school_year_id"]) if row.get("school_year_id") is not None else None,
        school_year_name=row.get("school_year_name"),
    )


class MySQLEnrollmentUnitOfWork(EnrollmentUnitOfWork):
    """Runs on one open cursor; the owning transaction commits or rolls back."""

    def __init__(self, cur):
        self._cur = cur

    def is_enrolled_in_year(self, student_id: int, school_year_id: int) -> bool:
        self._cur.execute(
            """
            SELECT sc.id
            FROM student_classes sc
            JOIN classes c ON c.id = sc.class_id
            WHERE sc.student_id=%s AND c.school_year_id=%s AND sc.is_active=1
            LIMIT 1
            """,
            (int(student_id), int(school_year_id)),
        )
        return fetchone(self._cur) is not None

    def find_inactive(self, student_id: int, class_id: int) -> Optional[int]:
        self._cur.execute(
            """
            SELECT id FROM student_classes
            WHERE student_id=%s AND class_id=%s AND is_active=0
            ORDER BY id DESC
            LIMIT 1
            """,
            (int(student_id), int(class_id)),
        )
        row = fetchone(self._cur)
        return int(row["id"]) if row else None

    def reactivate(
        self,
        enrollment_id: int,
        *,
        enrolled_by: Optional[int],
        enrollment_type: str = "regular",
        status_reason: Optional[str] = None,
    ) -> None:
        self._cur.execute(
            """
            UPDATE student_classes
            SET is_active=1, enrollment_status='active', enrolled_by=%s, enrollment_type=%s,
                status_reason=%s, enrolled_at=CURRENT_TIMESTAMP, reactivated_at=CURRENT_TIMESTAMP
            WHERE id=%s
            """,
            (enrolled_by, enrollment_type, status_reason, int(enrollment_id)),
        )

    def insert(
        self,
        *,
        student_id: int,
        class_id: int,
        enrolled_by: Optional[int],
        enrollment_type: str = "regular",
        status_reason: Optional[str] = None,
    ) -> int:
        self._cur.execute(
            """
            INSERT INTO student_classes
                (student_id, class_id, enrolled_by, is_active, enrollment_status, enrollment_type, status_reason)
            VALUES(%s,%s,%s,1,'active',%s,%s)
            """,
            (int(student_id), int(class_id), enrolled_by, enrollment_type, status_reason),
        )
        return int(self._cur.lastrowid)

    def deactivate(
        self,
        *,
        student_id: int,
        class_id: int,
        status: EnrollmentStatus,
        changed_by: Optional[int],
        reason: Optional[str],
    ) -> int:
        self._cur.execute(
            """
            UPDATE student_classes
            SET is_active=0, enrollment_status=%s, status_changed_at=CURRENT_TIMESTAMP,
                status_changed_by=%s, status_reason=%s
            WHERE student_id=%s AND class_id=%s AND is_active=1
            """,
            (status.value, changed_by, reason, int(student_id), int(class_id)),
        )
        return int(self._cur.rowcount)


class MySQLEnrollmentRepository(EnrollmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_active(self, student_id: int, class_id: int) -> Optional[Enrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE sc.student_id=%s AND sc.class_id=%s AND sc.is_active=1 LIMIT 1",
                (int(student_id), int(class_id)),
            )
            row = fetchone(cur)
            return _to_enrollment(row) if row else None

    def get_active_in_year(self, student_id: int, school_year_id: int) -> Optional[Enrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE sc.student_id=%s AND c.school_year_id=%s AND sc.is_active=1 LIMIT 1",
                (int(student_id), int(school_year_id)),
            )
            row = fetchone(cur)
            return _to_enrollment(row) if row else None

    def list_history(self, student_id: int) -> Sequence[Enrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE sc.student_id=%s ORDER BY sc.enrolled_at DESC, sc.status_changed_at DESC",
                (int(student_id),),
            )
            return [_to_enrollment(r) for r in fetchall(cur)]

    @contextmanager
    def unit_of_work(self) -> Iterator[EnrollmentUnitOfWork]:
        with db_transaction(self._conn_factory) as (_, cur):
            yield MySQLEnrollmentUnitOfWork(cur)
