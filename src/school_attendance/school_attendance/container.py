from __future__ import annotations

from dataclasses import dataclass

from .classes.mysql_class_repository import MySQLClassRepository
from .classes.service import ClassService
from .core.constants import DEFAULT_SESSION_TTL_MINUTES
from .database.connection import DBConfig, DatabaseConnection
from .enrollments.mysql_enrollment_repository import MySQLEnrollmentRepository
from .enrollments.service import EnrollmentService
from .placement.committer import PlacementCommitter
from .placement.eligibility import EligibilityResolver
from .placement.export import PlacementPreviewExporter
from .placement.mysql_placement_repository import MySQLPlacementRepository
from .placement.service import PlacementService
from .placement.session import PlacementSessionStore
from .placement.validator import PlacementValidator
from .retry.mysql_retry_repository import MySQLRetryQueueRepository
from .retry.service import RetryQueueService
from .school_years.mysql_school_year_repository import MySQLSchoolYearRepository
from .school_years.service import SchoolYearService
from .students.mysql_student_repository import MySQLStudentRepository
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    users_repo: MySQLUserRepository
    students_repo: MySQLStudentRepository
    school_years_repo: MySQLSchoolYearRepository
    classes_repo: MySQLClassRepository
    enrollments_repo: MySQLEnrollmentRepository
    placements_repo: MySQLPlacementRepository
    retry_repo: MySQLRetryQueueRepository

    auth_service: AuthService
    school_year_service: SchoolYearService
    class_service: ClassService
    enrollment_service: EnrollmentService
    eligibility: EligibilityResolver
    placement_validator: PlacementValidator
    placement_service: PlacementService
    placement_committer: PlacementCommitter
    placement_exporter: PlacementPreviewExporter
    placement_sessions: PlacementSessionStore
    retry_service: RetryQueueService


def build_container(*, db_config: dict, session_ttl_minutes: int = DEFAULT_SESSION_TTL_MINUTES) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    users_repo = MySQLUserRepository(conn)
    students_repo = MySQLStudentRepository(conn)
    school_years_repo = MySQLSchoolYearRepository(conn)
    classes_repo = MySQLClassRepository(conn)
    enrollments_repo = MySQLEnrollmentRepository(conn)
    placements_repo = MySQLPlacementRepository(conn)
    retry_repo = MySQLRetryQueueRepository(conn)

    validator = PlacementValidator(students_repo, classes_repo, enrollments_repo)

    return Container(
        conn=conn,
        users_repo=users_repo,
        students_repo=students_repo,
        school_years_repo=school_years_repo,
        classes_repo=classes_repo,
        enrollments_repo=enrollments_repo,
        placements_repo=placements_repo,
        retry_repo=retry_repo,
        auth_service=AuthService(users_repo),
        school_year_service=SchoolYearService(school_years_repo),
        class_service=ClassService(classes_repo, users_repo, school_years_repo),
        enrollment_service=EnrollmentService(enrollments_repo, students_repo, classes_repo),
        eligibility=EligibilityResolver(placements_repo, classes_repo),
        placement_validator=validator,
        placement_service=PlacementService(students_repo, classes_repo, enrollments_repo, placements_repo),
        placement_committer=PlacementCommitter(validator, enrollments_repo),
        placement_exporter=PlacementPreviewExporter(placements_repo, classes_repo, school_years_repo),
        placement_sessions=PlacementSessionStore(ttl_minutes=session_ttl_minutes),
        retry_service=RetryQueueService(retry_repo),
    )
