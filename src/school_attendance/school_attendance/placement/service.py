from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..classes.model import SchoolClass
from ..classes.repository import ClassRepository
from ..core.enums import CapacityStatus
from ..enrollments.repository import EnrollmentRepository
from ..students.repository import StudentRepository
from .model import (
    AssignResult,
    BulkAssignResult,
    ClassDistribution,
    ClassReview,
    DistributionSummary,
    PlacementStats,
    RosterEntry,
    SkippedPlacement,
)
from .repository import PlacementRepository
from .session import BulkAssign, IndividualAssign, PlacementSession, UndoResult

logger = logging.getLogger(__name__)


class PlacementService:
    """Staging use cases and review views over a PlacementSession.

    Every method takes the operator's session explicitly; nothing is written
    to the enrollment store here (see PlacementCommitter).
    """

    def __init__(
        self,
        students: StudentRepository,
        classes: ClassRepository,
        enrollments: EnrollmentRepository,
        placements: PlacementRepository,
    ):
        self._students = students
        self._classes = classes
        self._enrollments = enrollments
        self._placements = placements

    def _active_class(self, class_id: int) -> Optional[SchoolClass]:
        c = self._classes.get_by_id(int(class_id))
        return c if c and c.is_active else None

    def class_year(self, class_id: int) -> Optional[int]:
        """School year of an active class, None otherwise."""
        c = self._active_class(class_id)
        return c.school_year_id if c else None

    def _is_enrolled_in_year(self, student_id: int, year_id: int) -> bool:
        return self._enrollments.get_active_in_year(student_id, year_id) is not None

    # Staging

    def bulk_assign(
        self,
        session: PlacementSession,
        student_ids: Sequence[int],
        target_class_id: int,
        enrolled_by: int,
    ) -> BulkAssignResult:
        if not student_ids:
            return BulkAssignResult(success=False, error="No students selected")
        if int(target_class_id) <= 0:
            return BulkAssignResult(success=False, error="Invalid target class")

        target = self._active_class(target_class_id)
        if target is None:
            return BulkAssignResult(success=False, error="Target class not found")
        if target.year_is_locked:
            return BulkAssignResult(success=False, error="Target school year enrollment is locked")

        ids = [int(s) for s in student_ids]
        students = {s.id: s for s in self._students.get_many(ids)}

        skipped: list[SkippedPlacement] = []
        assigned: list[int] = []
        for sid in ids:
            student = students.get(sid)
            if student is None or not student.is_active:
                skipped.append(SkippedPlacement(student_id=sid, reason="Student inactive"))
                continue
            if self._is_enrolled_in_year(sid, target.school_year_id):
                skipped.append(SkippedPlacement(student_id=sid, reason="Already enrolled in target year"))
                continue
            if session.has_pending_placement(sid, target.school_year_id, self.class_year):
                skipped.append(SkippedPlacement(student_id=sid, reason="Already has pending placement"))
                continue

            session.add_pending_placement(sid, target.id)
            assigned.append(sid)

        if assigned:
            session.push_undo(BulkAssign(student_ids=tuple(assigned), target_class_id=target.id))
            logger.info(
                "Bulk staged %d student(s) into %s (skipped %d) by user %s",
                len(assigned), target.display_name, len(skipped), enrolled_by,
            )

        return BulkAssignResult(
            success=True,
            assigned_count=len(assigned),
            skipped=skipped,
            assignments=assigned,
            target_class_id=target.id,
        )

    def assign_individual(
        self,
        session: PlacementSession,
        student_id: int,
        target_class_id: int,
        enrolled_by: int,
    ) -> AssignResult:
        student_id, target_class_id = int(student_id), int(target_class_id)
        if student_id <= 0 or target_class_id <= 0:
            return AssignResult(success=False, message="Invalid student or class ID")

        student = self._students.get_by_id(student_id)
        if student is None or not student.is_active:
            return AssignResult(success=False, message="Student is inactive")

        target = self._active_class(target_class_id)
        if target is None:
            return AssignResult(success=False, message="Target class not found")
        if target.year_is_locked:
            return AssignResult(success=False, message="Target school year enrollment is locked")
        if self._is_enrolled_in_year(student_id, target.school_year_id):
            return AssignResult(success=False, message="Student already enrolled in target school year")

        previous = session.get_pending_placement(student_id)
        session.add_pending_placement(student_id, target_class_id)
        session.push_undo(
            IndividualAssign(student_id=student_id, previous_class_id=previous, new_class_id=target_class_id)
        )
        logger.info(
            "Student placement %s: student=%s from=%s to=%s by user %s",
            "assigned" if previous is None else "changed",
            student_id, previous, target_class_id, enrolled_by,
        )
        return AssignResult(
            success=True,
            message="Student assigned to class" if previous is None else "Student placement updated",
            previous_class_id=previous,
        )

    def remove_pending(
        self, session: PlacementSession, student_id: int, expected_class_id: Optional[int] = None
    ) -> bool:
        return session.remove_pending_placement(student_id, expected_class_id)

    def undo_last(self, session: PlacementSession) -> UndoResult:
        result = session.undo_last()
        if result.success:
            logger.info("Undid %s in placement session %s", type(result.action).__name__, session.session_id)
        return result

    def reset(self, session: PlacementSession) -> None:
        session.clear()

    # Review

    def get_placement_stats(
        self, session: PlacementSession, source_year_id: int, target_year_id: int
    ) -> PlacementStats:
        source_year_id, target_year_id = int(source_year_id), int(target_year_id)
        if source_year_id <= 0 or target_year_id <= 0:
            return PlacementStats()

        total = self._placements.count_source_students(source_year_id)
        if total == 0:
            return PlacementStats()

        placed = len({p.id for p in self._placements.list_placed_in_target(source_year_id, target_year_id)})

        pending = 0
        conflicts = 0
        for student_id, class_id in session.get_pending_placements().items():
            if self.class_year(class_id) != target_year_id:
                continue
            pending += 1
            if self._is_enrolled_in_year(student_id, target_year_id):
                conflicts += 1
        pending = max(0, pending - conflicts)

        unassigned = max(0, total - placed - pending)
        return PlacementStats(
            total_eligible=total,
            placed=placed,
            pending=pending,
            conflicts=conflicts,
            unassigned=unassigned,
            progress_percentage=round((placed + pending) / total * 100, 1),
            is_complete=unassigned == 0 and conflicts == 0,
        )

    def get_class_distribution(
        self, session: PlacementSession, target_year_id: int, include_pending: bool = True
    ) -> list[ClassDistribution]:
        if int(target_year_id) <= 0:
            return []

        classes = self._classes.list_by_school_year(int(target_year_id))
        pending_by_class: dict[int, int] = {}
        if include_pending:
            in_year = {c.id for c in classes}
            for class_id in session.get_pending_placements().values():
                if class_id in in_year:
                    pending_by_class[class_id] = pending_by_class.get(class_id, 0) + 1

        out = []
        for c in classes:
            pending = pending_by_class.get(c.id, 0)
            total = c.current_enrollment + pending
            pct = round(total / c.max_capacity * 100, 1) if c.max_capacity > 0 else 0.0
            if total >= c.max_capacity:
                status = CapacityStatus.FULL
            elif pct >= 90:
                status = CapacityStatus.WARNING
            else:
                status = CapacityStatus.NORMAL

            out.append(
                ClassDistribution(
                    class_id=c.id,
                    grade_level=c.grade_level,
                    section=c.section,
                    teacher_name=c.teacher_name,
                    max_capacity=c.max_capacity,
                    enrolled_count=c.current_enrollment,
                    pending_count=pending,
                    total_count=total,
                    available_slots=max(0, c.max_capacity - total),
                    capacity_percentage=pct,
                    capacity_status=status,
                )
            )
        return out

    def get_class_distribution_summary(self, session: PlacementSession, target_year_id: int) -> DistributionSummary:
        rows = self.get_class_distribution(session, target_year_id, include_pending=True)
        if not rows:
            return DistributionSummary()

        capacity = sum(r.max_capacity for r in rows)
        students = sum(r.total_count for r in rows)
        return DistributionSummary(
            total_classes=len(rows),
            total_capacity=capacity,
            total_enrolled=sum(r.enrolled_count for r in rows),
            total_pending=sum(r.pending_count for r in rows),
            total_students=students,
            total_available=sum(r.available_slots for r in rows),
            classes_at_capacity=sum(1 for r in rows if r.capacity_status == CapacityStatus.FULL),
            classes_near_capacity=sum(1 for r in rows if r.capacity_status == CapacityStatus.WARNING),
            average_class_size=round(students / len(rows), 1),
            overall_capacity_percentage=round(students / capacity * 100, 1) if capacity > 0 else 0.0,
        )

    def get_students_by_target_class(
        self, session: PlacementSession, class_id: int, source_year_id: int
    ) -> list[RosterEntry]:
        if int(class_id) <= 0:
            return []

        saved = list(self._placements.list_saved_in_class(int(class_id), int(source_year_id)))
        saved_ids = {s.id for s in saved}
        pending_ids = [
            sid for sid, cid in session.get_pending_placements().items()
            if cid == int(class_id) and sid not in saved_ids
        ]
        pending = list(self._placements.list_students_with_source(pending_ids, int(source_year_id)))

        return sorted(saved + pending, key=lambda s: (s.last_name, s.first_name))

    def get_classes_with_students(
        self, session: PlacementSession, target_year_id: int, source_year_id: int
    ) -> list[ClassReview]:
        return [
            ClassReview(
                distribution=d,
                students=self.get_students_by_target_class(session, d.class_id, source_year_id),
            )
            for d in self.get_class_distribution(session, target_year_id, include_pending=True)
        ]
