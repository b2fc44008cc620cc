from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone
from .model import SchoolClass
from .repository import ClassRepository

_SELECT = """
    SELECT c.id, c.grade_level, c.section, c.teacher_id, c.school_year_id,
           c.max_capacity, c.is_active,
           u.full_name AS teacher_name,
           sy.name AS school_year_name, sy.is_locked AS year_is_locked,
           (SELECT COUNT(*) FROM student_classes sc
             WHERE sc.class_id = c.id AND sc.is_active = 1) AS current_enrollment
    FROM classes c
    LEFT JOIN users u ON u.id = c.teacher_id
    JOIN school_years sy ON sy.id = c.school_year_id
"""


def _to_class(row: dict) -> SchoolClass:
    return SchoolClass(
        id=int(row["id"]),
        grade_level=row["grade_level"],
        section=row["section"],
        teacher_id=int(row["teacher_id"]),
        school_year_id=int(row["school_year_id"]),
        max_capacity=int(row["max_capacity"]),
        is_active=as_bool(row.get("is_active")),
        teacher_name=row.get("teacher_name"),
        school_year_name=row.get("school_year_name"),
        year_is_locked=as_bool(row.get("year_is_locked")),
        current_enrollment=int(row.get("current_enrollment") or 0),
    )


class MySQLClassRepository(ClassRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, class_id: int) -> Optional[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE c.id=%s", (int(class_id),))
            row = fetchone(cur)
            return _to_class(row) if row else None

    def list_by_school_year(self, school_year_id: int, *, grade_level: Optional[str] = None) -> Sequence[SchoolClass]:
        where = ["c.school_year_id=%s", "c.is_active=1"]
        params: list = [int(school_year_id)]
        if grade_level:
            where.append("c.grade_level=%s")
            params.append(grade_level)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE " + " AND ".join(where) + " ORDER BY c.grade_level, c.section",
                tuple(params),
            )
            return [_to_class(r) for r in fetchall(cur)]

    def find_active_duplicate(
        self,
        *,
        grade_level: str,
        section: str,
        school_year_id: int,
        exclude_class_id: Optional[int] = None,
    ) -> Optional[int]:
        sql = """
            SELECT id FROM classes
            WHERE grade_level=%s AND section=%s AND school_year_id=%s AND is_active=1
        """
        params: list = [grade_level, section, int(school_year_id)]
        if exclude_class_id is not None:
            sql += " AND id<>%s"
            params.append(int(exclude_class_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " LIMIT 1", tuple(params))
            row = fetchone(cur)
            return int(row["id"]) if row else None

    def create(
        self,
        *,
        grade_level: str,
        section: str,
        teacher_id: int,
        school_year_id: int,
        max_capacity: int,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO classes(grade_level, section, teacher_id, school_year_id, max_capacity, is_active)
                VALUES(%s,%s,%s,%s,%s,1)
                """,
                (grade_level, section, int(teacher_id), int(school_year_id), int(max_capacity)),
            )
            return int(cur.lastrowid)

    def update(
        self,
        *,
        class_id: int,
        grade_level: str,
        section: str,
        teacher_id: int,
        max_capacity: int,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE classes
                SET grade_level=%s, section=%s, teacher_id=%s, max_capacity=%s
                WHERE id=%s
                """,
                (grade_level, section, int(teacher_id), int(max_capacity), int(class_id)),
            )
            # rowcount is 0 when nothing changed; that still counts as success.
            return cur.rowcount >= 0

    def deactivate(self, class_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE classes SET is_active=0 WHERE id=%s", (int(class_id),))
            return cur.rowcount > 0
