from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import RetryStatus
from .model import RetryItem


class RetryQueueRepository(Protocol):
    def enqueue(self, *, operation_type: str, operation_data: str, max_retries: int, next_retry_at: datetime) -> int:
        raise NotImplementedError

    def get_by_id(self, queue_id: int) -> Optional[RetryItem]:
        raise NotImplementedError

    def list_due(self, *, now: datetime, limit: int) -> Sequence[RetryItem]:
        """Pending items under their retry limit whose next attempt is due, oldest first."""

        raise NotImplementedError

    def set_status(self, queue_id: int, status: RetryStatus) -> bool:
        raise NotImplementedError

    def record_failure(
        self,
        queue_id: int,
        *,
        status: RetryStatus,
        retry_count: int,
        error_message: str,
        next_retry_at: Optional[datetime],
    ) -> bool:
        raise NotImplementedError

    def count_by_status(self) -> dict[str, int]:
        raise NotImplementedError

    def delete_finished_before(self, cutoff: datetime) -> int:
        """Delete completed/failed items last updated before cutoff."""

        raise NotImplementedError
