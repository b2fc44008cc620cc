from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import RetryStatus


@dataclass(frozen=True)
class RetryItem:
    """Queued operation (notification, export, ...) awaiting another attempt.

    operation_data is the JSON payload as stored.
    """

    id: int
    operation_type: str
    operation_data: str
    retry_count: int
    max_retries: int
    status: RetryStatus
    next_retry_at: Optional[datetime] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class RetryFailure:
    queue_id: int
    operation: str
    error: str


@dataclass
class ProcessStats:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[RetryFailure] = field(default_factory=list)


@dataclass(frozen=True)
class QueueStats:
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.processing + self.completed + self.failed
