from __future__ import annotations

from typing import ContextManager, Optional, Protocol, Sequence

from ..core.enums import EnrollmentStatus
from .model import Enrollment


class EnrollmentUnitOfWork(Protocol):
    """Writes to student_classes that must commit or roll back together.

    Every call runs inside the same transaction, so reads observe the writes
    made earlier in the unit. Store failures surface as StorageError.
    """

    def is_enrolled_in_year(self, student_id: int, school_year_id: int) -> bool:
        raise NotImplementedError

    def find_inactive(self, student_id: int, class_id: int) -> Optional[int]:
        """Id of an inactive row for this exact (student, class) pair."""

        raise NotImplementedError

    def reactivate(
        self,
        enrollment_id: int,
        *,
        enrolled_by: Optional[int],
        enrollment_type: str = "regular",
        status_reason: Optional[str] = None,
    ) -> None:
        raise NotImplementedError

    def insert(
        self,
        *,
        student_id: int,
        class_id: int,
        enrolled_by: Optional[int],
        enrollment_type: str = "regular",
        status_reason: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def deactivate(
        self,
        *,
        student_id: int,
        class_id: int,
        status: EnrollmentStatus,
        changed_by: Optional[int],
        reason: Optional[str],
    ) -> int:
        """Deactivate the active row; returns the number of rows changed."""

        raise NotImplementedError


class EnrollmentRepository(Protocol):
    def get_active(self, student_id: int, class_id: int) -> Optional[Enrollment]:
        raise NotImplementedError

    def get_active_in_year(self, student_id: int, school_year_id: int) -> Optional[Enrollment]:
        raise NotImplementedError

    def list_history(self, student_id: int) -> Sequence[Enrollment]:
        """All rows of a student (active and historical), newest first."""

        raise NotImplementedError

    def unit_of_work(self) -> ContextManager[EnrollmentUnitOfWork]:
        raise NotImplementedError
