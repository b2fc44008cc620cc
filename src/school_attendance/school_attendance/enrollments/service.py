from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

from ..classes.model import SchoolClass
from ..classes.repository import ClassRepository
from ..common.validators import require_positive_id
from ..core.enums import EnrollmentStatus
from ..core.exceptions import NotFoundError, StorageError, ValidationError
from ..students.repository import StudentRepository
from .model import Enrollment, MoveFailure, MovedStudent, MoveResult, StatusChange
from .repository import EnrollmentRepository, EnrollmentUnitOfWork

logger = logging.getLogger(__name__)

_STATUS_LABELS = {
    EnrollmentStatus.WITHDRAWN: "withdrawn",
    EnrollmentStatus.DROPPED: "dropped out",
    EnrollmentStatus.TRANSFERRED_OUT: "transferred to another school",
    EnrollmentStatus.COMPLETED: "completed",
}


def enroll(
    uow: EnrollmentUnitOfWork,
    *,
    student_id: int,
    class_id: int,
    enrolled_by: Optional[int],
    enrollment_type: str = "regular",
    status_reason: Optional[str] = None,
) -> tuple[int, bool]:
    """Write one enrollment inside an open unit of work.

    An inactive row for the same (student, class) is reactivated instead of
    inserting a duplicate. Returns (enrollment_id, reactivated).
    """
    inactive_id = uow.find_inactive(student_id, class_id)
    if inactive_id is not None:
        uow.reactivate(
            inactive_id, enrolled_by=enrolled_by, enrollment_type=enrollment_type, status_reason=status_reason
        )
        return inactive_id, True
    enrollment_id = uow.insert(
        student_id=student_id,
        class_id=class_id,
        enrolled_by=enrolled_by,
        enrollment_type=enrollment_type,
        status_reason=status_reason,
    )
    return enrollment_id, False


class EnrollmentService:
    """Enrollment store use cases outside of the placement workflow."""

    def __init__(self, enrollments: EnrollmentRepository, students: StudentRepository, classes: ClassRepository):
        self._enrollments = enrollments
        self._students = students
        self._classes = classes

    def _require_active_class(self, class_id: int) -> SchoolClass:
        c = self._classes.get_by_id(class_id)
        if not c or not c.is_active:
            raise NotFoundError("Class not found or inactive")
        return c

    def assign_student_to_class(self, student_id: int, class_id: int, enrolled_by: Optional[int] = None) -> int:
        student_id = require_positive_id(student_id, "student ID")
        class_id = require_positive_id(class_id, "class ID")

        student = self._students.get_by_id(student_id)
        if not student or not student.is_active:
            raise ValidationError("Student not found or inactive")

        target = self._require_active_class(class_id)
        if target.year_is_locked:
            raise ValidationError("Cannot enroll - school year enrollment is locked")

        with self._enrollments.unit_of_work() as uow:
            if uow.is_enrolled_in_year(student_id, target.school_year_id):
                raise ValidationError("Student is already enrolled in a class for this school year")
            enrollment_id, reactivated = enroll(uow, student_id=student_id, class_id=class_id, enrolled_by=enrolled_by)

        logger.info(
            "Student %s enrolled in %s (enrollment=%s, reactivated=%s)",
            student_id, target.display_name, enrollment_id, reactivated,
        )
        return enrollment_id

    def move_students_to_classes(self, assignments: Mapping[int, int], enrolled_by: Optional[int] = None) -> MoveResult:
        result = MoveResult(total=len(assignments), moved=[], failed=[])
        if not assignments:
            return result

        students = {s.id: s for s in self._students.get_many(list(assignments.keys()))}
        classes: dict[int, Optional[SchoolClass]] = {}

        try:
            with self._enrollments.unit_of_work() as uow:
                for student_id, class_id in assignments.items():
                    student_id, class_id = int(student_id), int(class_id)

                    student = students.get(student_id)
                    if not student or not student.is_active:
                        result.failed.append(MoveFailure(student_id, class_id, "Student not found or inactive"))
                        continue

                    if class_id not in classes:
                        classes[class_id] = self._classes.get_by_id(class_id)
                    target = classes[class_id]
                    if not target or not target.is_active:
                        result.failed.append(MoveFailure(student_id, class_id, "Class not found or inactive"))
                        continue
                    if target.year_is_locked:
                        result.failed.append(MoveFailure(student_id, class_id, "School year enrollment is locked"))
                        continue

                    if uow.is_enrolled_in_year(student_id, target.school_year_id):
                        result.failed.append(
                            MoveFailure(student_id, class_id, "Student already enrolled for this school year")
                        )
                        continue

                    enrollment_id, reactivated = enroll(
                        uow, student_id=student_id, class_id=class_id, enrolled_by=enrolled_by
                    )
                    result.moved.append(MovedStudent(student_id, class_id, enrollment_id, reactivated))
        except StorageError:
            logger.exception("Bulk student move failed; rolled back %d assignment(s)", len(assignments))
            return MoveResult(
                total=len(assignments),
                moved=[],
                failed=[MoveFailure(int(s), int(c), "Database error") for s, c in assignments.items()],
                error="Database error while moving students. No changes were saved.",
            )

        logger.info("Moved %d of %d student(s) (by user %s)", result.success_count, result.total, enrolled_by)
        return result

    def deactivate_enrollment(
        self,
        student_id: int,
        class_id: int,
        status: EnrollmentStatus,
        changed_by: Optional[int],
        reason: str = "",
    ) -> StatusChange:
        """Single way to end an active enrollment: flag, status, audit fields."""
        if status == EnrollmentStatus.ACTIVE:
            raise ValidationError("Invalid enrollment status")

        student_id = require_positive_id(student_id, "student ID")
        class_id = require_positive_id(class_id, "class ID")

        current = self._enrollments.get_active(student_id, class_id)
        if not current:
            raise NotFoundError("Student is not enrolled in this class")

        c = self._classes.get_by_id(class_id)
        if c and c.year_is_locked:
            raise ValidationError("Cannot modify enrollment - school year is locked")

        with self._enrollments.unit_of_work() as uow:
            changed = uow.deactivate(
                student_id=student_id,
                class_id=class_id,
                status=status,
                changed_by=changed_by,
                reason=(reason or "").strip() or None,
            )
        if changed <= 0:
            raise ValidationError("Failed to update enrollment status")

        student = self._students.get_by_id(student_id)
        name = f"{student.first_name} {student.last_name}" if student else f"Student {student_id}"
        message = f"{name} has been marked as {_STATUS_LABELS.get(status, status.value)} from {current.class_name}"
        logger.info(
            "Enrollment status changed: student=%s class=%s status=%s by=%s reason=%r",
            student_id, class_id, status.value, changed_by, reason,
        )
        return StatusChange(student_id=student_id, class_id=class_id, status=status, message=message)

    def update_enrollment_status(
        self,
        student_id: int,
        class_id: int,
        new_status: str,
        changed_by: Optional[int],
        reason: str = "",
    ) -> StatusChange:
        try:
            status = EnrollmentStatus((new_status or "").strip())
        except ValueError:
            raise ValidationError("Invalid enrollment status")
        return self.deactivate_enrollment(student_id, class_id, status, changed_by, reason)

    def remove_student_from_class(
        self, student_id: int, class_id: int, removed_by: Optional[int] = None, reason: str = ""
    ) -> StatusChange:
        return self.deactivate_enrollment(student_id, class_id, EnrollmentStatus.WITHDRAWN, removed_by, reason)

    def transfer_student(
        self,
        student_id: int,
        from_class_id: int,
        to_class_id: int,
        transferred_by: Optional[int],
        reason: str = "",
    ) -> str:
        """Move an active enrollment to another class of the same school year."""
        student_id = require_positive_id(student_id, "student ID")
        from_class_id = require_positive_id(from_class_id, "class ID")
        to_class_id = require_positive_id(to_class_id, "class ID")
        if from_class_id == to_class_id:
            raise ValidationError("Cannot transfer to the same class")

        current = self._enrollments.get_active(student_id, from_class_id)
        if not current:
            raise NotFoundError("Student is not enrolled in the source class")

        target = self._classes.get_by_id(to_class_id)
        if not target or not target.is_active:
            raise NotFoundError("Target class not found")

        if current.school_year_id != target.school_year_id:
            raise ValidationError("Cannot transfer between different school years. Use student placement instead.")
        if target.year_is_locked:
            raise ValidationError("Cannot transfer - school year enrollment is locked")
        if target.max_capacity and target.current_enrollment >= target.max_capacity:
            raise ValidationError(
                f"Target class {target.display_name} is at full capacity "
                f"({target.current_enrollment}/{target.max_capacity})"
            )
        if self._enrollments.get_active(student_id, to_class_id):
            raise ValidationError("Student is already enrolled in the target class")

        with self._enrollments.unit_of_work() as uow:
            uow.deactivate(
                student_id=student_id,
                class_id=from_class_id,
                status=EnrollmentStatus.TRANSFERRED_OUT,
                changed_by=transferred_by,
                reason=(reason or "").strip() or f"Transferred to {target.display_name}",
            )
            enroll(
                uow,
                student_id=student_id,
                class_id=to_class_id,
                enrolled_by=transferred_by,
                enrollment_type="transferee",
                status_reason=f"Transferred from {current.class_name}",
            )

        logger.info(
            "Student %s transferred from %s to %s by user %s",
            student_id, current.class_name, target.display_name, transferred_by,
        )
        return f"Student has been transferred from {current.class_name} to {target.display_name}"

    def history(self, student_id: int) -> Sequence[Enrollment]:
        return self._enrollments.list_history(require_positive_id(student_id, "student ID"))
