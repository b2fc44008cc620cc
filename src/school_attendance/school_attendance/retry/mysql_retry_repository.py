from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import RetryStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import RetryItem
from .repository import RetryQueueRepository

_COLUMNS = (
    "id, operation_type, operation_data, retry_count, max_retries, status, "
    "next_retry_at, error_message, created_at, updated_at"
)


def _to_item(row: dict) -> RetryItem:
    return RetryItem(
        id=int(row["id"]),
        operation_type=row["operation_type"],
        operation_data=row["operation_data"],
        retry_count=int(row["retry_count"]),
        max_retries=int(row["max_retries"]),
        status=RetryStatus(row["status"]),
        next_retry_at=row.get("next_retry_at"),
        error_message=row.get("error_message"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class MySQLRetryQueueRepository(RetryQueueRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def enqueue(self, *, operation_type: str, operation_data: str, max_retries: int, next_retry_at: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO retry_queue(operation_type, operation_data, retry_count, max_retries, next_retry_at, status)
                VALUES(%s,%s,0,%s,%s,'pending')
                """,
                (operation_type, operation_data, int(max_retries), next_retry_at),
            )
            return int(cur.lastrowid)

    def get_by_id(self, queue_id: int) -> Optional[RetryItem]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM retry_queue WHERE id=%s", (int(queue_id),))
            row = fetchone(cur)
            return _to_item(row) if row else None

    def list_due(self, *, now: datetime, limit: int) -> Sequence[RetryItem]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM retry_queue
                WHERE status='pending'
                  AND retry_count < max_retries
                  AND (next_retry_at IS NULL OR next_retry_at <= %s)
                ORDER BY created_at ASC, id ASC
                LIMIT %s
                """,
                (now, int(limit)),
            )
            return [_to_item(r) for r in fetchall(cur)]

    def set_status(self, queue_id: int, status: RetryStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if status == RetryStatus.COMPLETED:
                cur.execute(
                    "UPDATE retry_queue SET status=%s, error_message=NULL WHERE id=%s",
                    (status.value, int(queue_id)),
                )
            else:
                cur.execute("UPDATE retry_queue SET status=%s WHERE id=%s", (status.value, int(queue_id)))
            return cur.rowcount > 0

    def record_failure(
        self,
        queue_id: int,
        *,
        status: RetryStatus,
        retry_count: int,
        error_message: str,
        next_retry_at: Optional[datetime],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE retry_queue
                SET status=%s, retry_count=%s, error_message=%s, next_retry_at=%s
                WHERE id=%s
                """,
                (status.value, int(retry_count), error_message, next_retry_at, int(queue_id)),
            )
            return cur.rowcount > 0

    def count_by_status(self) -> dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT status, COUNT(*) AS cnt FROM retry_queue GROUP BY status")
            return {r["status"]: int(r["cnt"]) for r in fetchall(cur)}

    def delete_finished_before(self, cutoff: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM retry_queue WHERE status IN ('completed', 'failed') AND updated_at < %s",
                (cutoff,),
            )
            return int(cur.rowcount)
