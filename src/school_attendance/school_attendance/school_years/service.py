from __future__ import annotations

import logging
import re
from datetime import date
from typing import Optional, Sequence

from ..common.validators import require_non_empty, require_positive_id
from ..core.constants import SCHOOL_YEAR_MAX, SCHOOL_YEAR_MIN
from ..core.exceptions import DuplicateNameError, InvalidFormatError, NotFoundError, ValidationError
from .model import LockResult, SchoolYear
from .repository import SchoolYearRepository

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^(\d{4})-(\d{4})$")


def validate_name(name: str) -> bool:
    """'2024-2025' style: consecutive years, first year within a sane range."""
    m = _NAME_RE.match(name or "")
    if not m:
        return False
    first, second = int(m.group(1)), int(m.group(2))
    if second != first + 1:
        return False
    return SCHOOL_YEAR_MIN <= first <= SCHOOL_YEAR_MAX


class SchoolYearService:
    def __init__(self, years: SchoolYearRepository):
        self._years = years

    def create(self, name: str, start_date: Optional[date] = None, end_date: Optional[date] = None) -> int:
        name = require_non_empty(name, "School year name")
        if not validate_name(name):
            raise InvalidFormatError("Invalid school year format. Use YYYY-YYYY (e.g., 2024-2025)")
        if start_date and end_date and end_date < start_date:
            raise ValidationError("End date must be on or after start date")
        if self._years.get_by_name(name):
            raise DuplicateNameError(f"School year {name} already exists")

        year_id = self._years.create(name=name, start_date=start_date, end_date=end_date)
        logger.info("Created school year %s (id=%s)", name, year_id)
        return year_id

    def list_all(self) -> Sequence[SchoolYear]:
        return self._years.list_all()

    def get(self, school_year_id: int) -> SchoolYear:
        year = self._years.get_by_id(require_positive_id(school_year_id, "school year ID"))
        if not year:
            raise NotFoundError("School year not found")
        return year

    def get_active(self) -> Optional[SchoolYear]:
        return self._years.get_active()

    def set_active(self, school_year_id: int) -> None:
        year = self.get(school_year_id)
        self._years.set_active(year.id)
        logger.info("School year %s is now active", year.name)

    def is_enrollment_locked(self, school_year_id: int) -> bool:
        year = self._years.get_by_id(int(school_year_id))
        return bool(year and year.is_locked)

    def lock(self, school_year_id: int, locked_by: Optional[int] = None) -> LockResult:
        year = self.get(school_year_id)
        if year.is_locked:
            return LockResult(
                success=True,
                message="School year enrollment is already locked",
                school_year_id=year.id,
                already_locked=True,
            )

        self._years.set_locked(year.id, is_locked=True)
        logger.info("School year %s enrollment locked by user %s", year.name, locked_by)
        return LockResult(
            success=True,
            message="School year enrollment locked successfully",
            school_year_id=year.id,
        )

    def unlock(self, school_year_id: int, unlocked_by: Optional[int] = None) -> LockResult:
        year = self.get(school_year_id)
        if not year.is_locked:
            return LockResult(
                success=True,
                message="School year enrollment is already unlocked",
                school_year_id=year.id,
                already_unlocked=True,
            )

        self._years.set_locked(year.id, is_locked=False)
        logger.info("School year %s enrollment unlocked by user %s", year.name, unlocked_by)
        return LockResult(
            success=True,
            message="School year enrollment unlocked successfully",
            school_year_id=year.id,
        )
