from __future__ import annotations

import logging
from pathlib import Path

from ..placement.export import PlacementPreviewExporter
from ..placement.session import PlacementSession
from .service import RetryHandler

logger = logging.getLogger(__name__)

EXPORT_OPERATION = "export"


def export_handler(exporter: PlacementPreviewExporter, export_dir: str | Path) -> RetryHandler:
    """Regenerate a placement preview CSV of saved placements into export_dir."""

    def handle(data: dict) -> bool:
        source = int(data.get("source_year_id") or 0)
        target = int(data.get("target_year_id") or 0)
        if source <= 0 or target <= 0:
            return False

        export = exporter.export_placement_preview(PlacementSession("retry"), source, target)
        out_dir = Path(export_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        (out_dir / export.filename).write_bytes(export.to_bytes())
        logger.info("Queued export written: %s (%d rows)", export.filename, export.record_count)
        return True

    return handle


def build_handlers(exporter: PlacementPreviewExporter, export_dir: str | Path) -> dict[str, RetryHandler]:
    return {EXPORT_OPERATION: export_handler(exporter, export_dir)}
