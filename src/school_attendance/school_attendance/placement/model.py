from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import CapacityStatus, PlacementError, PreviewStatus


@dataclass(frozen=True)
class EligibleStudent:
    """Read-model: an active student of the source year not yet placed in the target year."""

    id: int
    student_code: str
    first_name: str
    last_name: str
    source_class_id: int
    source_grade_level: str
    source_section: str
    lrn: Optional[str] = None
    suggested_grade: Optional[str] = None
    suggested_grade_display: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.last_name}, {self.first_name}".strip(", ")

    @property
    def source_class_display(self) -> str:
        return f"{self.source_grade_level} - {self.source_section}"


@dataclass(frozen=True)
class PlacedStudent:
    """Read-model: a source-year student who already has an active target-year enrollment."""

    id: int
    student_code: str
    first_name: str
    last_name: str
    source_grade_level: str
    source_section: str
    target_class_id: int
    target_grade_level: str
    target_section: str
    lrn: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.last_name}, {self.first_name}".strip(", ")


@dataclass(frozen=True)
class RosterEntry:
    """One student in the per-class review (saved enrollment or pending placement)."""

    id: int
    student_code: str
    first_name: str
    last_name: str
    lrn: Optional[str] = None
    source_class_id: Optional[int] = None
    source_grade_level: Optional[str] = None
    source_section: Optional[str] = None
    assignment_status: str = "saved"
    enrolled_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.last_name}, {self.first_name}"

    @property
    def source_class_display(self) -> str:
        return f"{self.source_grade_level or 'N/A'} - {self.source_section or 'N/A'}"


@dataclass(frozen=True)
class CapacityCheck:
    class_id: int
    current_enrollment: int
    max_capacity: int
    additional_students: int
    projected_enrollment: int
    available_slots: int
    at_threshold: bool
    exceeds_capacity: bool
    message: str


@dataclass(frozen=True)
class PlacementValidation:
    valid: bool
    error: Optional[str] = None
    error_code: Optional[PlacementError] = None
    warnings: list[str] = field(default_factory=list)
    capacity: Optional[CapacityCheck] = None
    school_year_id: Optional[int] = None


@dataclass(frozen=True)
class InvalidStudent:
    student_id: int
    error: str
    error_code: Optional[PlacementError] = None


@dataclass(frozen=True)
class BulkValidation:
    valid: bool
    valid_students: list[int] = field(default_factory=list)
    invalid_students: list[InvalidStudent] = field(default_factory=list)
    capacity_warning: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class SkippedPlacement:
    student_id: int
    reason: str
    class_id: Optional[int] = None


@dataclass(frozen=True)
class BulkAssignResult:
    success: bool
    assigned_count: int = 0
    skipped: list[SkippedPlacement] = field(default_factory=list)
    assignments: list[int] = field(default_factory=list)
    target_class_id: Optional[int] = None
    error: Optional[str] = None

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


@dataclass(frozen=True)
class AssignResult:
    success: bool
    message: str
    previous_class_id: Optional[int] = None


@dataclass(frozen=True)
class CommittedEnrollment:
    student_id: int
    class_id: int
    enrollment_id: int
    reactivated: bool = False


@dataclass(frozen=True)
class SaveResult:
    success: bool
    created_count: int = 0
    skipped: list[SkippedPlacement] = field(default_factory=list)
    enrollments: list[CommittedEnrollment] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


@dataclass(frozen=True)
class PlacementStats:
    total_eligible: int = 0
    placed: int = 0
    pending: int = 0
    conflicts: int = 0
    unassigned: int = 0
    progress_percentage: float = 0.0
    is_complete: bool = False


@dataclass(frozen=True)
class ClassDistribution:
    class_id: int
    grade_level: str
    section: str
    teacher_name: Optional[str]
    max_capacity: int
    enrolled_count: int
    pending_count: int
    total_count: int
    available_slots: int
    capacity_percentage: float
    capacity_status: CapacityStatus

    @property
    def display_name(self) -> str:
        return f"{self.grade_level} - {self.section}"


@dataclass(frozen=True)
class DistributionSummary:
    total_classes: int = 0
    total_capacity: int = 0
    total_enrolled: int = 0
    total_pending: int = 0
    total_students: int = 0
    total_available: int = 0
    classes_at_capacity: int = 0
    classes_near_capacity: int = 0
    average_class_size: float = 0.0
    overall_capacity_percentage: float = 0.0


@dataclass(frozen=True)
class ClassReview:
    distribution: ClassDistribution
    students: list[RosterEntry]

    @property
    def saved_count(self) -> int:
        return sum(1 for s in self.students if s.assignment_status == "saved")

    @property
    def pending_count(self) -> int:
        return sum(1 for s in self.students if s.assignment_status == "pending")


@dataclass(frozen=True)
class PreviewRow:
    student_name: str
    lrn: str
    source_class: str
    target_class: str
    status: PreviewStatus


@dataclass(frozen=True)
class PreviewExport:
    filename: str
    content: str
    record_count: int

    def to_bytes(self) -> bytes:
        # BOM so spreadsheet apps detect UTF-8.
        return self.content.encode("utf-8-sig")
