from __future__ import annotations

import logging
from typing import Mapping, Optional

from ..core.exceptions import StorageError
from ..enrollments.repository import EnrollmentRepository
from ..enrollments.service import enroll
from .model import CommittedEnrollment, SaveResult, SkippedPlacement
from .session import PlacementSession
from .validator import PlacementValidator

logger = logging.getLogger(__name__)

CONCURRENT_MODIFICATION = "Already enrolled (concurrent modification)"


class PlacementCommitter:
    """Writes staged placements to the enrollment store in one transaction."""

    def __init__(self, validator: PlacementValidator, enrollments: EnrollmentRepository):
        self._validator = validator
        self._enrollments = enrollments

    def save_placements(
        self,
        session: PlacementSession,
        committed_by: int,
        placements: Optional[Mapping[int, int]] = None,
    ) -> SaveResult:
        """Commit placements (the session's pending ones when none are given).

        Invalid entries are skipped before the transaction opens. Inside it,
        each entry is re-checked against the store so a student enrolled by
        someone else in the meantime is skipped instead of duplicated. Any
        store failure rolls back every write of the call.
        """
        if not placements:
            placements = session.get_pending_placements()
        if not placements:
            return SaveResult(success=False, error="No placements to save")

        skipped: list[SkippedPlacement] = []
        valid: dict[int, tuple[int, int]] = {}
        for student_id, class_id in placements.items():
            student_id, class_id = int(student_id), int(class_id)
            check = self._validator.validate_placement(student_id, class_id)
            if not check.valid:
                skipped.append(SkippedPlacement(student_id=student_id, class_id=class_id, reason=check.error or ""))
                continue
            valid[student_id] = (class_id, check.school_year_id)

        if not valid:
            return SaveResult(success=False, skipped=skipped, error="No valid placements to save")

        written: list[CommittedEnrollment] = []
        raced: list[SkippedPlacement] = []
        try:
            with self._enrollments.unit_of_work() as uow:
                for student_id, (class_id, year_id) in valid.items():
                    if uow.is_enrolled_in_year(student_id, year_id):
                        raced.append(
                            SkippedPlacement(student_id=student_id, class_id=class_id, reason=CONCURRENT_MODIFICATION)
                        )
                        continue
                    enrollment_id, reactivated = enroll(
                        uow, student_id=student_id, class_id=class_id, enrolled_by=committed_by
                    )
                    written.append(CommittedEnrollment(student_id, class_id, enrollment_id, reactivated))
        except StorageError:
            logger.exception(
                "Placement save failed and was rolled back (%d placement(s), by user %s)",
                len(valid), committed_by,
            )
            return SaveResult(
                success=False,
                skipped=skipped,
                error="Database error while saving placements. No changes were saved.",
            )

        skipped.extend(raced)
        session.clear()
        logger.info(
            "Placements saved: created=%d skipped=%d by user %s",
            len(written), len(skipped), committed_by,
        )
        return SaveResult(success=True, created_count=len(written), skipped=skipped, enrollments=written)
