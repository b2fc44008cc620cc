from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import SchoolClass


class ClassRepository(Protocol):
    def get_by_id(self, class_id: int) -> Optional[SchoolClass]:
        """Class with teacher, year lock flag and active enrollment count."""

        raise NotImplementedError

    def list_by_school_year(self, school_year_id: int, *, grade_level: Optional[str] = None) -> Sequence[SchoolClass]:
        """Active classes of one year, ordered by grade then section."""

        raise NotImplementedError

    def find_active_duplicate(
        self,
        *,
        grade_level: str,
        section: str,
        school_year_id: int,
        exclude_class_id: Optional[int] = None,
    ) -> Optional[int]:
        raise NotImplementedError

    def create(
        self,
        *,
        grade_level: str,
        section: str,
        teacher_id: int,
        school_year_id: int,
        max_capacity: int,
    ) -> int:
        raise NotImplementedError

    def update(
        self,
        *,
        class_id: int,
        grade_level: str,
        section: str,
        teacher_id: int,
        max_capacity: int,
    ) -> bool:
        raise NotImplementedError

    def deactivate(self, class_id: int) -> bool:
        raise NotImplementedError
