from __future__ import annotations

import csv
import io
import logging
from datetime import datetime
from typing import Optional

from ..classes.repository import ClassRepository
from ..common.datetime_utils import file_timestamp, now_local
from ..core.enums import PreviewStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..school_years.repository import SchoolYearRepository
from .model import PreviewExport, PreviewRow
from .repository import PlacementRepository
from .session import PlacementSession

logger = logging.getLogger(__name__)

PREVIEW_HEADERS = ["Student Name", "LRN", "Source Class", "Target Class", "Status"]


class PlacementPreviewExporter:
    """Full placement picture (eligible, placed, pending, conflicts) as CSV."""

    def __init__(self, placements: PlacementRepository, classes: ClassRepository, years: SchoolYearRepository):
        self._placements = placements
        self._classes = classes
        self._years = years

    def build_preview_rows(
        self, session: PlacementSession, source_year_id: int, target_year_id: int
    ) -> list[PreviewRow]:
        pending = session.get_pending_placements()
        class_names = {c.id: c.display_name for c in self._classes.list_by_school_year(int(target_year_id))}

        rows: list[PreviewRow] = []
        for s in self._placements.list_eligible(int(source_year_id), int(target_year_id)):
            target_class = ""
            status = PreviewStatus.PENDING
            if s.id in pending:
                target_class = class_names.get(pending[s.id], "Unknown Class")
                status = PreviewStatus.ASSIGNED
            rows.append(PreviewRow(s.full_name, s.lrn or "", s.source_class_display, target_class, status))

        for p in self._placements.list_placed_in_target(int(source_year_id), int(target_year_id)):
            rows.append(
                PreviewRow(
                    student_name=p.full_name,
                    lrn=p.lrn or "",
                    source_class=f"{p.source_grade_level} - {p.source_section}",
                    target_class=f"{p.target_grade_level} - {p.target_section}",
                    # Staged again although the store already has them.
                    status=PreviewStatus.CONFLICT if p.id in pending else PreviewStatus.PLACED,
                )
            )
        return rows

    def export_placement_preview(
        self,
        session: PlacementSession,
        source_year_id: int,
        target_year_id: int,
        *,
        now: Optional[datetime] = None,
    ) -> PreviewExport:
        if int(source_year_id) <= 0 or int(target_year_id) <= 0:
            raise ValidationError("Invalid school year IDs")

        source = self._years.get_by_id(int(source_year_id))
        target = self._years.get_by_id(int(target_year_id))
        if source is None or target is None:
            raise NotFoundError("School year not found")

        now = now or now_local()
        rows = self.build_preview_rows(session, source.id, target.id)

        out = io.StringIO()
        writer = csv.writer(out)
        writer.writerow(["Student Placement Preview"])
        writer.writerow([f"Source School Year: {source.name}"])
        writer.writerow([f"Target School Year: {target.name}"])
        writer.writerow([f"Generated: {now.strftime('%Y-%m-%d %H:%M:%S')}"])
        writer.writerow([])
        writer.writerow(PREVIEW_HEADERS)
        for r in rows:
            writer.writerow([r.student_name, r.lrn, r.source_class, r.target_class, r.status.value])

        filename = (
            f"placement_preview_SY{source.name.replace('-', '_')}"
            f"_to_SY{target.name.replace('-', '_')}_{file_timestamp(now)}.csv"
        )
        logger.info("Placement preview exported: %s (%d rows)", filename, len(rows))
        return PreviewExport(filename=filename, content=out.getvalue(), record_count=len(rows))
