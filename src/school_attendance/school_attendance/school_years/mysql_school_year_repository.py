from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.exceptions import NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone
from .model import SchoolYear
from .repository import SchoolYearRepository

_COLUMNS = "id, name, is_active, is_locked, start_date, end_date, created_at"


def _to_school_year(row: dict) -> SchoolYear:
    return SchoolYear(
        id=int(row["id"]),
        name=row["name"],
        is_active=as_bool(row.get("is_active")),
        is_locked=as_bool(row.get("is_locked")),
        start_date=row.get("start_date"),
        end_date=row.get("end_date"),
        created_at=row.get("created_at"),
    )


class MySQLSchoolYearRepository(SchoolYearRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, school_year_id: int) -> Optional[SchoolYear]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM school_years WHERE id=%s", (int(school_year_id),))
            row = fetchone(cur)
            return _to_school_year(row) if row else None

    def get_by_name(self, name: str) -> Optional[SchoolYear]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM school_years WHERE name=%s", (name,))
            row = fetchone(cur)
            return _to_school_year(row) if row else None

    def get_active(self) -> Optional[SchoolYear]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM school_years WHERE is_active=1 LIMIT 1")
            row = fetchone(cur)
            return _to_school_year(row) if row else None

    def list_all(self) -> Sequence[SchoolYear]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM school_years ORDER BY name DESC")
            return [_to_school_year(r) for r in fetchall(cur)]

    def create(self, *, name: str, start_date: Optional[date], end_date: Optional[date]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO school_years(name, start_date, end_date, is_active, is_locked)
                VALUES(%s,%s,%s,0,0)
                """,
                (name, start_date, end_date),
            )
            return int(cur.lastrowid)

    def set_active(self, school_year_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE school_years SET is_active=0 WHERE is_active=1")
            cur.execute("UPDATE school_years SET is_active=1 WHERE id=%s", (int(school_year_id),))
            if cur.rowcount == 0:
                raise NotFoundError("School year not found")

    def set_locked(self, school_year_id: int, *, is_locked: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE school_years SET is_locked=%s WHERE id=%s",
                (1 if is_locked else 0, int(school_year_id)),
            )
            return cur.rowcount > 0
