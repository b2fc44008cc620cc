from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import EnrollmentLifecycle, EnrollmentStatus


@dataclass(frozen=True)
class Enrollment:
    """Domain entity: one (student, class) row of student_classes.

    Rows are never deleted. grade_level, section, school_year_id and
    school_year_name come from joins and are only used for display.
    """

    id: int
    student_id: int
    class_id: int
    enrolled_by: Optional[int]
    enrolled_at: Optional[datetime]
    is_active: bool
    enrollment_status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    enrollment_type: str = "regular"
    status_changed_at: Optional[datetime] = None
    status_changed_by: Optional[int] = None
    status_reason: Optional[str] = None
    reactivated_at: Optional[datetime] = None

    grade_level: Optional[str] = None
    section: Optional[str] = None
    school_year_id: Optional[int] = None
    school_year_name: Optional[str] = None

    @property
    def lifecycle(self) -> EnrollmentLifecycle:
        if not self.is_active:
            return EnrollmentLifecycle.INACTIVE
        if self.reactivated_at is not None:
            return EnrollmentLifecycle.REACTIVATED
        return EnrollmentLifecycle.ACTIVE

    @property
    def class_name(self) -> str:
        return f"{self.grade_level} - {self.section}"


@dataclass(frozen=True)
class MoveFailure:
    student_id: int
    class_id: int
    reason: str


@dataclass(frozen=True)
class MovedStudent:
    student_id: int
    class_id: int
    enrollment_id: int
    reactivated: bool = False


@dataclass
class MoveResult:
    total: int
    moved: list[MovedStudent]
    failed: list[MoveFailure]
    error: Optional[str] = None

    @property
    def success_count(self) -> int:
        return len(self.moved)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


@dataclass(frozen=True)
class StatusChange:
    student_id: int
    class_id: int
    status: EnrollmentStatus
    message: str
