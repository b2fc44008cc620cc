"""Placement session: per-operator staging area for pending placements.

Nothing here touches the database. A session maps student id -> target class
id and keeps a LIFO stack of the actions that produced that mapping so the
operator can step back. It is owned by one operator; the store below hands
sessions out by an opaque id kept in the operator's cookie.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Union

from ..common.datetime_utils import minutes_after, now_local
from ..core.constants import DEFAULT_SESSION_TTL_MINUTES

logger = logging.getLogger(__name__)

ClassYearLookup = Callable[[int], Optional[int]]


@dataclass(frozen=True)
class BulkAssign:
    student_ids: tuple[int, ...]
    target_class_id: int


@dataclass(frozen=True)
class IndividualAssign:
    student_id: int
    previous_class_id: Optional[int]
    new_class_id: int


@dataclass(frozen=True)
class RemovePlacement:
    student_id: int
    removed_class_id: int


PlacementAction = Union[BulkAssign, IndividualAssign, RemovePlacement]


@dataclass(frozen=True)
class UndoResult:
    success: bool
    message: str
    action: Optional[PlacementAction] = None


class PlacementSession:
    def __init__(
        self,
        session_id: str,
        source_year_id: Optional[int] = None,
        target_year_id: Optional[int] = None,
    ):
        self.session_id = session_id
        self.source_year_id = source_year_id
        self.target_year_id = target_year_id
        self._assignments: dict[int, int] = {}
        self._undo_stack: list[PlacementAction] = []
        self.last_used_at: datetime = now_local()

    def init(self, source_id: Optional[int] = None, target_id: Optional[int] = None) -> None:
        """Set the year pair; ids left as None keep their current value."""
        if source_id is not None:
            self.source_year_id = int(source_id)
        if target_id is not None:
            self.target_year_id = int(target_id)

    # Pending placements

    def add_pending_placement(self, student_id: int, class_id: int) -> None:
        self._assignments[int(student_id)] = int(class_id)

    def has_pending_placement(self, student_id: int, year_id: int, class_year_lookup: ClassYearLookup) -> bool:
        class_id = self._assignments.get(int(student_id))
        if class_id is None:
            return False
        return class_year_lookup(class_id) == int(year_id)

    def remove_pending_placement(self, student_id: int, expected_class_id: Optional[int] = None) -> bool:
        student_id = int(student_id)
        current = self._assignments.get(student_id)
        if current is None:
            return False
        if expected_class_id and current != int(expected_class_id):
            return False

        del self._assignments[student_id]
        self.push_undo(RemovePlacement(student_id=student_id, removed_class_id=current))
        logger.info("Pending placement removed: student=%s class=%s", student_id, current)
        return True

    def get_pending_placements(self) -> dict[int, int]:
        return dict(self._assignments)

    def get_pending_placement(self, student_id: int) -> Optional[int]:
        return self._assignments.get(int(student_id))

    @property
    def pending_count(self) -> int:
        return len(self._assignments)

    def clear_pending_placements(self) -> None:
        self._assignments.clear()

    def clear(self) -> None:
        self._assignments.clear()
        self._undo_stack.clear()
        self.source_year_id = None
        self.target_year_id = None

    # Undo stack

    def push_undo(self, action: PlacementAction) -> None:
        self._undo_stack.append(action)

    def pop_undo(self) -> Optional[PlacementAction]:
        return self._undo_stack.pop() if self._undo_stack else None

    @property
    def undo_stack_size(self) -> int:
        return len(self._undo_stack)

    @property
    def undo_stack(self) -> tuple[PlacementAction, ...]:
        return tuple(self._undo_stack)

    def clear_undo_stack(self) -> None:
        self._undo_stack.clear()

    def undo_last(self) -> UndoResult:
        action = self.pop_undo()
        if action is None:
            return UndoResult(success=False, message="No actions to undo")

        if isinstance(action, BulkAssign):
            for student_id in action.student_ids:
                # Leave students that were re-assigned after the bulk action.
                if self._assignments.get(student_id) == action.target_class_id:
                    del self._assignments[student_id]
            return UndoResult(
                success=True,
                message=f"Bulk assignment undone: {len(action.student_ids)} students removed",
                action=action,
            )

        if isinstance(action, IndividualAssign):
            if action.previous_class_id is None:
                self._assignments.pop(action.student_id, None)
            else:
                self._assignments[action.student_id] = action.previous_class_id
            return UndoResult(success=True, message="Individual assignment undone", action=action)

        if isinstance(action, RemovePlacement):
            self._assignments[action.student_id] = action.removed_class_id
            return UndoResult(success=True, message="Placement removal undone", action=action)

        logger.warning("Discarded unknown undo action %r", action)
        return UndoResult(success=False, message="Unknown action type")


class PlacementSessionStore:
    """In-process registry of placement sessions.

    Sessions idle for longer than ttl_minutes are dropped on the next access;
    staged work is never a source of truth, so losing it only costs re-staging.
    """

    def __init__(
        self,
        *,
        ttl_minutes: int = DEFAULT_SESSION_TTL_MINUTES,
        clock: Callable[[], datetime] = now_local,
    ):
        self._ttl_minutes = int(ttl_minutes)
        self._clock = clock
        self._sessions: dict[str, PlacementSession] = {}
        self._lock = threading.Lock()

    def _expired(self, s: PlacementSession, now: datetime) -> bool:
        return minutes_after(s.last_used_at, self._ttl_minutes) <= now

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [sid for sid, s in self._sessions.items() if self._expired(s, now)]
            for sid in stale:
                del self._sessions[sid]
        if stale:
            logger.info("Expired %d idle placement session(s)", len(stale))
        return len(stale)

    def get(self, session_id: Optional[str]) -> Optional[PlacementSession]:
        if not session_id:
            return None
        self.purge_expired()
        with self._lock:
            s = self._sessions.get(session_id)
            if s is not None:
                s.last_used_at = self._clock()
            return s

    def get_or_create(self, session_id: Optional[str] = None) -> PlacementSession:
        s = self.get(session_id)
        if s is not None:
            return s
        s = PlacementSession(uuid.uuid4().hex)
        s.last_used_at = self._clock()
        with self._lock:
            self._sessions[s.session_id] = s
        return s

    def discard(self, session_id: Optional[str]) -> None:
        with self._lock:
            self._sessions.pop(session_id or "", None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
