from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    ADMIN = "admin"
    TEACHER = "teacher"


class EnrollmentStatus(str, Enum):
    """Status stored on student_classes rows."""

    ACTIVE = "active"
    WITHDRAWN = "withdrawn"
    DROPPED = "dropped"
    TRANSFERRED_OUT = "transferred_out"
    COMPLETED = "completed"


class EnrollmentLifecycle(str, Enum):
    """Soft-delete lifecycle of an enrollment row.

    Rows are never hard-deleted: removal makes them INACTIVE (kept for history)
    and re-enrollment into the same class flips them to REACTIVATED.
    """

    ACTIVE = "active"
    INACTIVE = "inactive"
    REACTIVATED = "reactivated"


class PlacementError(str, Enum):
    """Rejection codes of a single placement, in evaluation order."""

    INVALID_ID = "INVALID_ID"
    STUDENT_INACTIVE = "STUDENT_INACTIVE"
    CLASS_NOT_FOUND = "CLASS_NOT_FOUND"
    CLASS_INACTIVE = "CLASS_INACTIVE"
    YEAR_LOCKED = "YEAR_LOCKED"
    ALREADY_ENROLLED = "ALREADY_ENROLLED"


class CapacityStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    FULL = "full"


class PreviewStatus(str, Enum):
    """Status column of the placement preview export."""

    PENDING = "Pending"
    ASSIGNED = "Assigned"
    PLACED = "Placed"
    CONFLICT = "Conflict"


class RetryStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
