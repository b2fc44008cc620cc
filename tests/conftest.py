from __future__ import annotations

from types import SimpleNamespace

import pytest

from src.school_attendance.school_attendance.classes.service import ClassService
from src.school_attendance.school_attendance.core.enums import Role
from src.school_attendance.school_attendance.enrollments.service import EnrollmentService
from src.school_attendance.school_attendance.placement.committer import PlacementCommitter
from src.school_attendance.school_attendance.placement.eligibility import EligibilityResolver
from src.school_attendance.school_attendance.placement.export import PlacementPreviewExporter
from src.school_attendance.school_attendance.placement.service import PlacementService
from src.school_attendance.school_attendance.placement.session import PlacementSession
from src.school_attendance.school_attendance.placement.validator import PlacementValidator
from src.school_attendance.school_attendance.school_years.service import SchoolYearService

from tests.fakes import (
    FakeClassRepo,
    FakeDB,
    FakeEnrollmentRepo,
    FakePlacementRepo,
    FakeSchoolYearRepo,
    FakeStudentRepo,
    FakeUserRepo,
)


@pytest.fixture()
def db() -> FakeDB:
    d = FakeDB()
    d.add_user("Admin Demo", Role.ADMIN)
    d.add_user("Teacher Demo", Role.TEACHER)
    return d


@pytest.fixture()
def repos(db):
    return SimpleNamespace(
        users=FakeUserRepo(db),
        students=FakeStudentRepo(db),
        years=FakeSchoolYearRepo(db),
        classes=FakeClassRepo(db),
        enrollments=FakeEnrollmentRepo(db),
        placements=FakePlacementRepo(db),
    )


@pytest.fixture()
def services(repos):
    validator = PlacementValidator(repos.students, repos.classes, repos.enrollments)
    return SimpleNamespace(
        years=SchoolYearService(repos.years),
        classes=ClassService(repos.classes, repos.users, repos.years),
        enrollments=EnrollmentService(repos.enrollments, repos.students, repos.classes),
        eligibility=EligibilityResolver(repos.placements, repos.classes),
        validator=validator,
        placement=PlacementService(repos.students, repos.classes, repos.enrollments, repos.placements),
        committer=PlacementCommitter(validator, repos.enrollments),
        exporter=PlacementPreviewExporter(repos.placements, repos.classes, repos.years),
    )


@pytest.fixture()
def two_years(db):
    """2023-2024 (source) with Grade 6 - A, and active 2024-2025 (target) with Grade 7 - A/B."""
    src = db.add_year("2023-2024")
    tgt = db.add_year("2024-2025", is_active=True)
    return SimpleNamespace(
        src=src,
        tgt=tgt,
        g6a=db.add_class("Grade 6", "A", src, teacher_id=2),
        g7a=db.add_class("Grade 7", "A", tgt, teacher_id=2),
        g7b=db.add_class("Grade 7", "B", tgt, teacher_id=2),
    )


@pytest.fixture()
def session(two_years) -> PlacementSession:
    return PlacementSession("test-session", two_years.src.id, two_years.tgt.id)
