from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..common.validators import require_non_empty, require_positive_id
from ..core.constants import DEFAULT_MAX_CAPACITY
from ..core.exceptions import DuplicateNameError, NotFoundError, ValidationError
from ..school_years.repository import SchoolYearRepository
from ..users.repository import UserRepository
from .model import SchoolClass
from .repository import ClassRepository

logger = logging.getLogger(__name__)


class ClassService:
    """Class directory: classes scoped to one school year."""

    def __init__(self, classes: ClassRepository, users: UserRepository, years: SchoolYearRepository):
        self._classes = classes
        self._users = users
        self._years = years

    def _require_teacher(self, teacher_id: int) -> int:
        teacher_id = require_positive_id(teacher_id, "teacher ID")
        teacher = self._users.get_by_id(teacher_id)
        if not teacher or not teacher.is_teacher:
            raise ValidationError("Selected user is not an active teacher")
        return teacher_id

    @staticmethod
    def _require_capacity(max_capacity: int) -> int:
        try:
            cap = int(max_capacity)
        except (TypeError, ValueError):
            raise ValidationError("Max capacity must be a number")
        if cap <= 0:
            raise ValidationError("Max capacity must be greater than zero")
        return cap

    def create(
        self,
        *,
        grade_level: str,
        section: str,
        teacher_id: int,
        school_year_id: int,
        max_capacity: int = DEFAULT_MAX_CAPACITY,
    ) -> int:
        grade_level = require_non_empty(grade_level, "Grade level")
        section = require_non_empty(section, "Section")
        teacher_id = self._require_teacher(teacher_id)
        school_year_id = require_positive_id(school_year_id, "school year ID")
        max_capacity = self._require_capacity(max_capacity)

        if not self._years.get_by_id(school_year_id):
            raise NotFoundError("School year not found")

        if self._classes.find_active_duplicate(
            grade_level=grade_level, section=section, school_year_id=school_year_id
        ):
            raise DuplicateNameError(f"Class {grade_level} - {section} already exists for this school year")

        class_id = self._classes.create(
            grade_level=grade_level,
            section=section,
            teacher_id=teacher_id,
            school_year_id=school_year_id,
            max_capacity=max_capacity,
        )
        logger.info("Created class %s - %s (id=%s, year=%s)", grade_level, section, class_id, school_year_id)
        return class_id

    def update(
        self,
        *,
        class_id: int,
        grade_level: str,
        section: str,
        teacher_id: int,
        max_capacity: Optional[int] = None,
    ) -> None:
        current = self.get(class_id)
        grade_level = require_non_empty(grade_level, "Grade level")
        section = require_non_empty(section, "Section")
        teacher_id = self._require_teacher(teacher_id)
        capacity = current.max_capacity if max_capacity is None else self._require_capacity(max_capacity)

        if self._classes.find_active_duplicate(
            grade_level=grade_level,
            section=section,
            school_year_id=current.school_year_id,
            exclude_class_id=current.id,
        ):
            raise DuplicateNameError(f"Class {grade_level} - {section} already exists for this school year")

        ok = self._classes.update(
            class_id=current.id,
            grade_level=grade_level,
            section=section,
            teacher_id=teacher_id,
            max_capacity=capacity,
        )
        if not ok:
            raise ValidationError("Failed to update class")

    def deactivate(self, class_id: int) -> None:
        current = self.get(class_id)
        if not self._classes.deactivate(current.id):
            raise ValidationError("Failed to deactivate class")
        logger.info("Deactivated class %s (id=%s)", current.display_name, current.id)

    def get(self, class_id: int) -> SchoolClass:
        c = self._classes.get_by_id(require_positive_id(class_id, "class ID"))
        if not c:
            raise NotFoundError("Class not found")
        return c

    def list_by_school_year(self, school_year_id: int) -> Sequence[SchoolClass]:
        return self._classes.list_by_school_year(require_positive_id(school_year_id, "school year ID"))
