from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_placeholders
from .model import EligibleStudent, PlacedStudent, RosterEntry
from .repository import PlacementRepository

# Students actively enrolled in an active class of the source year.
_SOURCE_FROM = """
    FROM students s
    JOIN student_classes sc ON sc.student_id = s.id
    JOIN classes c ON c.id = sc.class_id
    WHERE c.school_year_id = %s
      AND sc.is_active = 1
      AND s.is_active = 1
      AND c.is_active = 1
"""

# Set exclusion: any active enrollment in any class of the target year disqualifies.
_NOT_IN_TARGET = """
      AND NOT EXISTS (
          SELECT 1
          FROM student_classes sc2
          JOIN classes c2 ON c2.id = sc2.class_id
          WHERE sc2.student_id = s.id
            AND c2.school_year_id = %s
            AND sc2.is_active = 1
      )
"""

# Left joins to the student's source-year class, if any.
_SOURCE_CLASS_JOIN = """
    LEFT JOIN (
        SELECT sc_s.student_id, c_s.id AS source_class_id,
               c_s.grade_level AS source_grade_level, c_s.section AS source_section
        FROM student_classes sc_s
        JOIN classes c_s ON c_s.id = sc_s.class_id
        WHERE sc_s.is_active = 1 AND c_s.school_year_id = %s
    ) src ON src.student_id = s.id
"""


def _to_roster(row: dict, status: str) -> RosterEntry:
    return RosterEntry(
        id=int(row["id"]),
        student_code=row["student_code"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        lrn=row.get("lrn"),
        source_class_id=int(row["source_class_id"]) if row.get("source_class_id") is not None else None,
        source_grade_level=row.get("source_grade_level"),
        source_section=row.get("source_section"),
        assignment_status=status,
        enrolled_at=row.get("enrolled_at"),
    )


class MySQLPlacementRepository(PlacementRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_eligible(self, source_year_id: int, target_year_id: int) -> Sequence[EligibleStudent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT DISTINCT s.id, s.student_id AS student_code, s.lrn, s.first_name, s.last_name,
                       c.id AS source_class_id, c.grade_level AS source_grade_level,
                       c.section AS source_section
                """
                + _SOURCE_FROM
                + _NOT_IN_TARGET
                + " ORDER BY c.grade_level, c.section, s.last_name, s.first_name",
                (int(source_year_id), int(target_year_id)),
            )
            return [
                EligibleStudent(
                    id=int(r["id"]),
                    student_code=r["student_code"],
                    first_name=r["first_name"],
                    last_name=r["last_name"],
                    lrn=r.get("lrn"),
                    source_class_id=int(r["source_class_id"]),
                    source_grade_level=r["source_grade_level"],
                    source_section=r["source_section"],
                )
                for r in fetchall(cur)
            ]

    def count_eligible(self, source_year_id: int, target_year_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(DISTINCT s.id) AS cnt " + _SOURCE_FROM + _NOT_IN_TARGET,
                (int(source_year_id), int(target_year_id)),
            )
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def count_source_students(self, source_year_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(DISTINCT s.id) AS cnt " + _SOURCE_FROM, (int(source_year_id),))
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def list_placed_in_target(self, source_year_id: int, target_year_id: int) -> Sequence[PlacedStudent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT DISTINCT s.id, s.student_id AS student_code, s.lrn, s.first_name, s.last_name,
                       c.grade_level AS source_grade_level, c.section AS source_section,
                       ct.id AS target_class_id, ct.grade_level AS target_grade_level,
                       ct.section AS target_section
                FROM students s
                JOIN student_classes sc ON sc.student_id = s.id
                JOIN classes c ON c.id = sc.class_id
                JOIN student_classes sct ON sct.student_id = s.id
                JOIN classes ct ON ct.id = sct.class_id
                WHERE c.school_year_id = %s
                  AND sc.is_active = 1
                  AND s.is_active = 1
                  AND c.is_active = 1
                  AND ct.school_year_id = %s
                  AND sct.is_active = 1
                  AND ct.is_active = 1
                ORDER BY c.grade_level, c.section, s.last_name, s.first_name
                """,
                (int(source_year_id), int(target_year_id)),
            )
            return [
                PlacedStudent(
                    id=int(r["id"]),
                    student_code=r["student_code"],
                    first_name=r["first_name"],
                    last_name=r["last_name"],
                    lrn=r.get("lrn"),
                    source_grade_level=r["source_grade_level"],
                    source_section=r["source_section"],
                    target_class_id=int(r["target_class_id"]),
                    target_grade_level=r["target_grade_level"],
                    target_section=r["target_section"],
                )
                for r in fetchall(cur)
            ]

    def list_saved_in_class(self, class_id: int, source_year_id: int) -> Sequence[RosterEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT s.id, s.student_id AS student_code, s.lrn, s.first_name, s.last_name,
                       sc.enrolled_at, src.source_class_id, src.source_grade_level, src.source_section
                FROM students s
                JOIN student_classes sc ON sc.student_id = s.id
                """
                + _SOURCE_CLASS_JOIN
                + """
                WHERE sc.class_id = %s AND sc.is_active = 1 AND s.is_active = 1
                ORDER BY s.last_name, s.first_name
                """,
                (int(source_year_id), int(class_id)),
            )
            return [_to_roster(r, "saved") for r in fetchall(cur)]

    def list_students_with_source(self, student_ids: Sequence[int], source_year_id: int) -> Sequence[RosterEntry]:
        ids = [int(i) for i in student_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT s.id, s.student_id AS student_code, s.lrn, s.first_name, s.last_name,
                       src.source_class_id, src.source_grade_level, src.source_section
                FROM students s
                """
                + _SOURCE_CLASS_JOIN
                + f"""
                WHERE s.id IN ({in_placeholders(ids)}) AND s.is_active = 1
                ORDER BY s.last_name, s.first_name
                """,
                (int(source_year_id), *ids),
            )
            return [_to_roster(r, "pending") for r in fetchall(cur)]
