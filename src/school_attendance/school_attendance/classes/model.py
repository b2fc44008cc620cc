from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.constants import DEFAULT_MAX_CAPACITY


@dataclass(frozen=True)
class SchoolClass:
    """Domain entity: a grade/section within one school year.

    teacher_name, school_year_name, year_is_locked and current_enrollment are
    read-side joins; they are filled by the repository and ignored on writes.
    """

    id: int
    grade_level: str
    section: str
    teacher_id: int
    school_year_id: int
    max_capacity: int = DEFAULT_MAX_CAPACITY
    is_active: bool = True
    teacher_name: Optional[str] = None
    school_year_name: Optional[str] = None
    year_is_locked: bool = False
    current_enrollment: int = 0

    @property
    def display_name(self) -> str:
        return f"{self.grade_level} - {self.section}"
