from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class SchoolYear:
    """Domain entity: School year ("2024-2025").

    At most one year is active at a time; a locked year accepts no new
    placements or removals.
    """

    id: int
    name: str
    is_active: bool = False
    is_locked: bool = False
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class LockResult:
    success: bool
    message: str
    school_year_id: int
    already_locked: bool = False
    already_unlocked: bool = False
