from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence

from ..classes.model import SchoolClass
from ..classes.repository import ClassRepository
from .model import EligibleStudent
from .repository import PlacementRepository

_GRADE_RE = re.compile(r"Grade\s*(\d+)", re.IGNORECASE)


def get_suggested_grade(current_grade: str) -> str:
    """Next grade for promotion: 'Grade 6' -> 'Grade 7', 'Kindergarten'/'K' -> 'Grade 1'.

    Anything unrecognized is returned unchanged (the student repeats).
    """
    m = _GRADE_RE.search(current_grade or "")
    if m:
        return f"Grade {int(m.group(1)) + 1}"

    if (current_grade or "").strip().lower() in {"kindergarten", "k"}:
        return "Grade 1"

    return current_grade


def suggested_grade_display(current_grade: str) -> str:
    return f"{current_grade} → {get_suggested_grade(current_grade)}"


def filter_students(
    students: Iterable[EligibleStudent],
    grade_level: Optional[str] = None,
    section: Optional[str] = None,
) -> list[EligibleStudent]:
    """Exact-match filters on the source class; None or '' means no filter."""
    out = []
    for s in students:
        if grade_level and s.source_grade_level != grade_level:
            continue
        if section and s.source_section != section:
            continue
        out.append(s)
    return out


@dataclass(frozen=True)
class FilterOptions:
    grade_levels: list[str]
    sections: list[str]


def get_filter_options(students: Iterable[EligibleStudent]) -> FilterOptions:
    grades: set[str] = set()
    sections: set[str] = set()
    for s in students:
        if s.source_grade_level is not None:
            grades.add(s.source_grade_level)
        if s.source_section is not None:
            sections.add(s.source_section)
    return FilterOptions(grade_levels=sorted(grades), sections=sorted(sections))


class EligibilityResolver:
    """Which source-year students still need a class in the target year."""

    def __init__(self, placements: PlacementRepository, classes: ClassRepository):
        self._placements = placements
        self._classes = classes

    def get_eligible_students(self, source_year_id: int, target_year_id: int) -> Sequence[EligibleStudent]:
        if int(source_year_id) <= 0 or int(target_year_id) <= 0:
            return []
        return self._placements.list_eligible(int(source_year_id), int(target_year_id))

    def get_eligible_students_with_suggestions(
        self, source_year_id: int, target_year_id: int
    ) -> list[EligibleStudent]:
        return [
            replace(
                s,
                suggested_grade=get_suggested_grade(s.source_grade_level or ""),
                suggested_grade_display=suggested_grade_display(s.source_grade_level or ""),
            )
            for s in self.get_eligible_students(source_year_id, target_year_id)
        ]

    def get_eligible_count(self, source_year_id: int, target_year_id: int) -> int:
        if int(source_year_id) <= 0 or int(target_year_id) <= 0:
            return 0
        return self._placements.count_eligible(int(source_year_id), int(target_year_id))

    def get_available_target_classes(
        self, target_year_id: int, grade_level: Optional[str] = None
    ) -> Sequence[SchoolClass]:
        if int(target_year_id) <= 0:
            return []
        return self._classes.list_by_school_year(int(target_year_id), grade_level=grade_level or None)
