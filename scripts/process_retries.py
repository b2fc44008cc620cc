from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.school_attendance.school_attendance.container import build_container
from src.school_attendance.school_attendance.retry.handlers import build_handlers


def main() -> int:
    """Cron entrypoint: run due retry items, then drop finished ones older than 30 days."""
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    container = build_container(db_config=dict(settings.DB_CONFIG))
    handlers = build_handlers(container.placement_exporter, getattr(settings, "EXPORT_DIR", REPO_ROOT / "exports"))

    try:
        stats = container.retry_service.process_queue(handlers)
    except Exception:
        logging.getLogger(__name__).exception("Retry queue processor failed")
        return 1

    print(f"Processed: {stats.processed}")
    print(f"Succeeded: {stats.succeeded}")
    print(f"Failed: {stats.failed}")
    for err in stats.errors:
        print(f"  - Queue ID {err.queue_id}: {err.error}")

    cleaned = container.retry_service.cleanup(30)
    if cleaned:
        print(f"Cleaned up {cleaned} old retry queue items")
    return 0


if __name__ == "__main__":
    sys.exit(main())
