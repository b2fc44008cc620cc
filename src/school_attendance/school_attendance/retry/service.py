"""Best-effort retry queue for side operations (parent notifications, exports).

Failed operations are re-attempted by a cron job with a fixed backoff; after
max_retries attempts an item is parked as failed for an administrator.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional

from ..common.datetime_utils import minutes_after, now_local
from ..core.constants import DEFAULT_MAX_RETRIES, RETRY_BACKOFF_MINUTES, RETRY_BATCH_SIZE, RETRY_CLEANUP_DAYS
from ..core.enums import RetryStatus
from ..core.exceptions import ValidationError
from .model import ProcessStats, QueueStats, RetryFailure, RetryItem
from .repository import RetryQueueRepository

logger = logging.getLogger(__name__)

# A handler returns True when the operation succeeded.
RetryHandler = Callable[[dict], bool]


def backoff_minutes(retry_count: int) -> int:
    if 0 <= retry_count < len(RETRY_BACKOFF_MINUTES):
        return RETRY_BACKOFF_MINUTES[retry_count]
    return RETRY_BACKOFF_MINUTES[-1]


def calculate_next_retry(retry_count: int, now: datetime) -> datetime:
    return minutes_after(now, backoff_minutes(retry_count))


class RetryQueueService:
    def __init__(self, queue: RetryQueueRepository, *, clock: Callable[[], datetime] = now_local):
        self._queue = queue
        self._clock = clock

    def enqueue(self, operation: str, data: Mapping[str, Any], max_retries: int = DEFAULT_MAX_RETRIES) -> int:
        operation = (operation or "").strip()
        if not operation:
            raise ValidationError("Operation type is required")

        queue_id = self._queue.enqueue(
            operation_type=operation,
            operation_data=json.dumps(dict(data), default=str),
            max_retries=int(max_retries),
            next_retry_at=calculate_next_retry(0, self._clock()),
        )
        logger.info("Operation added to retry queue: id=%s operation=%s", queue_id, operation)
        return queue_id

    def mark_failed(self, item: RetryItem, error: str) -> None:
        attempts = item.retry_count + 1
        if attempts >= item.max_retries:
            self._queue.record_failure(
                item.id,
                status=RetryStatus.FAILED,
                retry_count=attempts,
                error_message=error,
                next_retry_at=None,
            )
            logger.critical(
                "Retry permanently failed after %d attempt(s): id=%s operation=%s error=%s",
                attempts, item.id, item.operation_type, error,
            )
            return

        next_at = calculate_next_retry(attempts, self._clock())
        self._queue.record_failure(
            item.id,
            status=RetryStatus.PENDING,
            retry_count=attempts,
            error_message=error,
            next_retry_at=next_at,
        )
        logger.warning(
            "Retry failed, next attempt at %s: id=%s attempt=%d error=%s",
            next_at, item.id, attempts, error,
        )

    def _run(self, item: RetryItem, handlers: Mapping[str, RetryHandler]) -> Optional[str]:
        """Run one item; returns None on success or the error text."""
        try:
            data = json.loads(item.operation_data or "")
        except ValueError:
            data = None
        if not data or not isinstance(data, dict):
            return "Invalid operation data"

        handler = handlers.get(item.operation_type)
        if handler is None:
            return f"Unknown operation type: {item.operation_type}"

        try:
            ok = handler(data)
        except Exception as e:
            logger.exception("Retry handler raised for item %s", item.id)
            return str(e) or type(e).__name__
        return None if ok else f"{item.operation_type} retry failed"

    def process_queue(self, handlers: Mapping[str, RetryHandler], *, limit: int = RETRY_BATCH_SIZE) -> ProcessStats:
        stats = ProcessStats()
        for item in self._queue.list_due(now=self._clock(), limit=limit):
            stats.processed += 1
            self._queue.set_status(item.id, RetryStatus.PROCESSING)

            error = self._run(item, handlers)
            if error is None:
                self._queue.set_status(item.id, RetryStatus.COMPLETED)
                stats.succeeded += 1
                continue

            self.mark_failed(item, error)
            stats.failed += 1
            stats.errors.append(RetryFailure(queue_id=item.id, operation=item.operation_type, error=error))

        logger.info(
            "Retry queue processed: processed=%d succeeded=%d failed=%d",
            stats.processed, stats.succeeded, stats.failed,
        )
        return stats

    def stats(self) -> QueueStats:
        counts = self._queue.count_by_status()
        return QueueStats(
            pending=counts.get(RetryStatus.PENDING.value, 0),
            processing=counts.get(RetryStatus.PROCESSING.value, 0),
            completed=counts.get(RetryStatus.COMPLETED.value, 0),
            failed=counts.get(RetryStatus.FAILED.value, 0),
        )

    def cleanup(self, days: int = RETRY_CLEANUP_DAYS) -> int:
        deleted = self._queue.delete_finished_before(self._clock() - timedelta(days=int(days)))
        if deleted:
            logger.info("Cleaned up %d retry queue item(s)", deleted)
        return deleted
