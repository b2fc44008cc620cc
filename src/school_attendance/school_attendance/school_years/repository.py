from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import SchoolYear


class SchoolYearRepository(Protocol):
    def get_by_id(self, school_year_id: int) -> Optional[SchoolYear]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[SchoolYear]:
        raise NotImplementedError

    def get_active(self) -> Optional[SchoolYear]:
        raise NotImplementedError

    def list_all(self) -> Sequence[SchoolYear]:
        """Newest first (by name)."""

        raise NotImplementedError

    def create(self, *, name: str, start_date: Optional[date], end_date: Optional[date]) -> int:
        raise NotImplementedError

    def set_active(self, school_year_id: int) -> None:
        """Deactivate every year and activate this one, in one transaction.

        Raises NotFoundError, leaving the previous active year in place, when
        the id matches no row.
        """

        raise NotImplementedError

    def set_locked(self, school_year_id: int, *, is_locked: bool) -> bool:
        raise NotImplementedError
