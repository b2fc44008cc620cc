from __future__ import annotations

from typing import Protocol, Sequence

from .model import EligibleStudent, PlacedStudent, RosterEntry


class PlacementRepository(Protocol):
    """Read queries spanning students, classes and enrollments of two school years."""

    def list_eligible(self, source_year_id: int, target_year_id: int) -> Sequence[EligibleStudent]:
        """Active source-year students with no active enrollment anywhere in the target year.

        Ordered by source grade, section, last name, first name.
        """

        raise NotImplementedError

    def count_eligible(self, source_year_id: int, target_year_id: int) -> int:
        raise NotImplementedError

    def count_source_students(self, source_year_id: int) -> int:
        """Distinct active students actively enrolled in an active source-year class."""

        raise NotImplementedError

    def list_placed_in_target(self, source_year_id: int, target_year_id: int) -> Sequence[PlacedStudent]:
        raise NotImplementedError

    def list_saved_in_class(self, class_id: int, source_year_id: int) -> Sequence[RosterEntry]:
        """Active enrollments of a class, with each student's source-year class."""

        raise NotImplementedError

    def list_students_with_source(self, student_ids: Sequence[int], source_year_id: int) -> Sequence[RosterEntry]:
        """Active students by id with their source-year class (assignment_status='pending')."""

        raise NotImplementedError
