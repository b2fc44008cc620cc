from __future__ import annotations

from typing import Optional, Sequence

from ..classes.model import SchoolClass
from ..classes.repository import ClassRepository
from ..core.constants import CAPACITY_THRESHOLD, DEFAULT_MAX_CAPACITY
from ..core.enums import PlacementError
from ..enrollments.repository import EnrollmentRepository
from ..students.model import Student
from ..students.repository import StudentRepository
from .model import BulkValidation, CapacityCheck, InvalidStudent, PlacementValidation

_MESSAGES = {
    PlacementError.STUDENT_INACTIVE: "Student is inactive or does not exist",
    PlacementError.CLASS_NOT_FOUND: "Target class does not exist",
    PlacementError.CLASS_INACTIVE: "Target class is not active",
    PlacementError.YEAR_LOCKED: "Target school year enrollment is locked",
    PlacementError.ALREADY_ENROLLED: "Student already enrolled in target school year",
}


def compute_capacity(class_id: int, current: int, max_capacity: int, additional: int = 1) -> CapacityCheck:
    """Capacity arithmetic for one class.

    at_threshold compares the current count with 90% of capacity (truncated);
    exceeds_capacity compares the projected count with capacity. The two are
    independent.
    """
    projected = current + additional
    available = max(0, max_capacity - current)
    at_threshold = current >= int(max_capacity * CAPACITY_THRESHOLD)
    exceeds = projected > max_capacity

    if exceeds:
        message = f"Adding {additional} student(s) would exceed class capacity ({projected}/{max_capacity})"
    elif at_threshold:
        message = f"Class is at or above 90% capacity ({current}/{max_capacity})"
    else:
        message = f"Class has {available} available slots ({current}/{max_capacity})"

    return CapacityCheck(
        class_id=class_id,
        current_enrollment=current,
        max_capacity=max_capacity,
        additional_students=additional,
        projected_enrollment=projected,
        available_slots=available,
        at_threshold=at_threshold,
        exceeds_capacity=exceeds,
        message=message,
    )


class PlacementValidator:
    """Rules a placement must pass before it is staged or committed.

    Business-rule failures come back as results, never as exceptions, so
    batch callers can partition students into valid and invalid.
    """

    def __init__(self, students: StudentRepository, classes: ClassRepository, enrollments: EnrollmentRepository):
        self._students = students
        self._classes = classes
        self._enrollments = enrollments

    def check_class_capacity(self, class_id: int, additional_students: int = 1) -> CapacityCheck:
        c = self._classes.get_by_id(int(class_id)) if int(class_id) > 0 else None
        if c is None:
            return CapacityCheck(
                class_id=int(class_id),
                current_enrollment=0,
                max_capacity=DEFAULT_MAX_CAPACITY,
                additional_students=additional_students,
                projected_enrollment=0,
                available_slots=0,
                at_threshold=False,
                exceeds_capacity=False,
                message="Class not found",
            )
        return compute_capacity(c.id, c.current_enrollment, c.max_capacity or DEFAULT_MAX_CAPACITY, additional_students)

    @staticmethod
    def _class_error(target: Optional[SchoolClass]) -> Optional[PlacementError]:
        if target is None:
            return PlacementError.CLASS_NOT_FOUND
        if not target.is_active:
            return PlacementError.CLASS_INACTIVE
        if target.year_is_locked:
            return PlacementError.YEAR_LOCKED
        return None

    def _student_error(self, student: Optional[Student], target: SchoolClass) -> Optional[PlacementError]:
        if student is None or not student.is_active:
            return PlacementError.STUDENT_INACTIVE
        if self._enrollments.get_active_in_year(student.id, target.school_year_id) is not None:
            return PlacementError.ALREADY_ENROLLED
        return None

    @staticmethod
    def _invalid(code: PlacementError, message: Optional[str] = None) -> PlacementValidation:
        return PlacementValidation(valid=False, error=message or _MESSAGES[code], error_code=code)

    def validate_placement(self, student_id: int, class_id: int) -> PlacementValidation:
        student_id, class_id = int(student_id), int(class_id)
        if student_id <= 0:
            return self._invalid(PlacementError.INVALID_ID, "Invalid student ID")
        if class_id <= 0:
            return self._invalid(PlacementError.INVALID_ID, "Invalid class ID")

        student = self._students.get_by_id(student_id)
        if student is None or not student.is_active:
            return self._invalid(PlacementError.STUDENT_INACTIVE)

        target = self._classes.get_by_id(class_id)
        code = self._class_error(target)
        if code:
            return self._invalid(code)

        code = self._student_error(student, target)
        if code:
            return self._invalid(code)

        capacity = compute_capacity(target.id, target.current_enrollment, target.max_capacity, 1)
        warnings = [capacity.message] if capacity.exceeds_capacity or capacity.at_threshold else []
        return PlacementValidation(
            valid=True, warnings=warnings, capacity=capacity, school_year_id=target.school_year_id
        )

    def validate_bulk_placement(self, student_ids: Sequence[int], class_id: int) -> BulkValidation:
        if not student_ids:
            return BulkValidation(valid=False, error="No students selected")
        if int(class_id) <= 0:
            return BulkValidation(valid=False, error="Invalid target class")

        target = self._classes.get_by_id(int(class_id))
        code = self._class_error(target)
        if code:
            return BulkValidation(valid=False, error=_MESSAGES[code])

        ids = [int(s) for s in student_ids]
        students = {s.id: s for s in self._students.get_many([i for i in ids if i > 0])}

        valid: list[int] = []
        invalid: list[InvalidStudent] = []
        for sid in ids:
            if sid <= 0:
                invalid.append(InvalidStudent(sid, "Invalid student ID", PlacementError.INVALID_ID))
                continue
            code = self._student_error(students.get(sid), target)
            if code:
                invalid.append(InvalidStudent(sid, _MESSAGES[code], code))
            else:
                valid.append(sid)

        warning = None
        if valid:
            capacity = compute_capacity(target.id, target.current_enrollment, target.max_capacity, len(valid))
            if capacity.exceeds_capacity or capacity.at_threshold:
                warning = capacity.message

        return BulkValidation(
            valid=bool(valid),
            valid_students=valid,
            invalid_students=invalid,
            capacity_warning=warning,
        )
