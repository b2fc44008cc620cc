"""In-memory stand-ins for the MySQL repositories.

All repositories share one FakeDB so that a write through one (an enrollment)
is visible to the others (class enrollment counts, placement queries).
"""

from __future__ import annotations

import copy
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Optional

from src.school_attendance.school_attendance.classes.model import SchoolClass
from src.school_attendance.school_attendance.core.enums import EnrollmentStatus, RetryStatus, Role
from src.school_attendance.school_attendance.core.exceptions import NotFoundError, StorageError
from src.school_attendance.school_attendance.enrollments.model import Enrollment
from src.school_attendance.school_attendance.placement.model import EligibleStudent, PlacedStudent, RosterEntry
from src.school_attendance.school_attendance.retry.model import RetryItem
from src.school_attendance.school_attendance.school_years.model import SchoolYear
from src.school_attendance.school_attendance.students.model import Student
from src.school_attendance.school_attendance.users.model import User

NOW = datetime(2025, 6, 1, 9, 0, 0)


class FakeDB:
    def __init__(self):
        self.users: dict[int, User] = {}
        self.students: dict[int, Student] = {}
        self.years: dict[int, SchoolYear] = {}
        self.classes: dict[int, SchoolClass] = {}
        self.enrollments: dict[int, dict] = {}
        self._ids = {"user": 0, "student": 0, "year": 0, "class": 0, "enrollment": 0}

    def next_id(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    # seeding helpers

    def add_user(self, full_name: str, role: Role = Role.TEACHER, *, is_active: bool = True) -> User:
        uid = self.next_id("user")
        u = User(
            id=uid,
            full_name=full_name,
            username=full_name.lower().replace(" ", "."),
            password_hash="x",
            role=role,
            is_active=is_active,
        )
        self.users[uid] = u
        return u

    def add_student(self, first_name: str, last_name: str, *, lrn: Optional[str] = None, is_active: bool = True) -> Student:
        sid = self.next_id("student")
        s = Student(
            id=sid,
            student_code=f"S{sid:04d}",
            first_name=first_name,
            last_name=last_name,
            lrn=lrn,
            is_active=is_active,
        )
        self.students[sid] = s
        return s

    def add_year(self, name: str, *, is_active: bool = False, is_locked: bool = False) -> SchoolYear:
        yid = self.next_id("year")
        y = SchoolYear(id=yid, name=name, is_active=is_active, is_locked=is_locked, created_at=NOW)
        self.years[yid] = y
        return y

    def add_class(
        self,
        grade_level: str,
        section: str,
        year: SchoolYear,
        *,
        teacher_id: int = 1,
        max_capacity: int = 50,
        is_active: bool = True,
    ) -> SchoolClass:
        cid = self.next_id("class")
        c = SchoolClass(
            id=cid,
            grade_level=grade_level,
            section=section,
            teacher_id=teacher_id,
            school_year_id=year.id,
            max_capacity=max_capacity,
            is_active=is_active,
        )
        self.classes[cid] = c
        return c

    def add_enrollment(self, student_id: int, class_id: int, *, is_active: bool = True) -> int:
        eid = self.next_id("enrollment")
        self.enrollments[eid] = {
            "id": eid,
            "student_id": int(student_id),
            "class_id": int(class_id),
            "enrolled_by": None,
            "enrolled_at": NOW,
            "is_active": is_active,
            "enrollment_status": EnrollmentStatus.ACTIVE if is_active else EnrollmentStatus.WITHDRAWN,
            "enrollment_type": "regular",
            "status_changed_at": None,
            "status_changed_by": None,
            "status_reason": None,
            "reactivated_at": None,
        }
        return eid

    def fill_class(self, c: SchoolClass, count: int) -> None:
        for i in range(count):
            s = self.add_student(f"Filler{i}", f"Class{c.id}")
            self.add_enrollment(s.id, c.id)

    # read helpers

    def class_year(self, class_id: int) -> Optional[int]:
        c = self.classes.get(int(class_id))
        return c.school_year_id if c else None

    def active_rows(self, *, student_id: Optional[int] = None, class_id: Optional[int] = None) -> list[dict]:
        return [
            r for r in self.enrollments.values()
            if r["is_active"]
            and (student_id is None or r["student_id"] == int(student_id))
            and (class_id is None or r["class_id"] == int(class_id))
        ]

    def active_in_year(self, student_id: int, year_id: int) -> list[dict]:
        return [r for r in self.active_rows(student_id=student_id) if self.class_year(r["class_id"]) == int(year_id)]

    def view_class(self, c: SchoolClass) -> SchoolClass:
        year = self.years[c.school_year_id]
        teacher = self.users.get(c.teacher_id)
        return replace(
            c,
            teacher_name=teacher.full_name if teacher else None,
            school_year_name=year.name,
            year_is_locked=year.is_locked,
            current_enrollment=len(self.active_rows(class_id=c.id)),
        )

    def to_enrollment(self, row: dict) -> Enrollment:
        c = self.classes[row["class_id"]]
        return Enrollment(
            grade_level=c.grade_level,
            section=c.section,
            school_year_id=c.school_year_id,
            school_year_name=self.years[c.school_year_id].name,
            **row,
        )


class FakeUserRepo:
    def __init__(self, db: FakeDB):
        self._db = db

    def get_by_id(self, user_id):
        return self._db.users.get(int(user_id))

    def get_by_username(self, username):
        return next((u for u in self._db.users.values() if u.username == username), None)

    def list_teachers(self):
        return [u for u in self._db.users.values() if u.is_teacher]


class FakeStudentRepo:
    def __init__(self, db: FakeDB):
        self._db = db

    def get_by_id(self, student_id):
        return self._db.students.get(int(student_id))

    def get_many(self, student_ids):
        return [self._db.students[int(i)] for i in student_ids if int(i) in self._db.students]


class FakeSchoolYearRepo:
    def __init__(self, db: FakeDB):
        self._db = db

    def get_by_id(self, school_year_id):
        return self._db.years.get(int(school_year_id))

    def get_by_name(self, name):
        return next((y for y in self._db.years.values() if y.name == name), None)

    def get_active(self):
        return next((y for y in self._db.years.values() if y.is_active), None)

    def list_all(self):
        return sorted(self._db.years.values(), key=lambda y: y.name, reverse=True)

    def create(self, *, name, start_date, end_date):
        yid = self._db.next_id("year")
        self._db.years[yid] = SchoolYear(id=yid, name=name, start_date=start_date, end_date=end_date, created_at=NOW)
        return yid

    def set_active(self, school_year_id):
        if int(school_year_id) not in self._db.years:
            raise NotFoundError("School year not found")
        for yid, y in list(self._db.years.items()):
            self._db.years[yid] = replace(y, is_active=yid == int(school_year_id))

    def set_locked(self, school_year_id, *, is_locked):
        y = self._db.years.get(int(school_year_id))
        if y is None:
            return False
        self._db.years[y.id] = replace(y, is_locked=bool(is_locked))
        return True


class FakeClassRepo:
    def __init__(self, db: FakeDB):
        self._db = db

    def get_by_id(self, class_id):
        c = self._db.classes.get(int(class_id))
        return self._db.view_class(c) if c else None

    def list_by_school_year(self, school_year_id, *, grade_level=None):
        out = [
            self._db.view_class(c) for c in self._db.classes.values()
            if c.school_year_id == int(school_year_id)
            and c.is_active
            and (not grade_level or c.grade_level == grade_level)
        ]
        return sorted(out, key=lambda c: (c.grade_level, c.section))

    def find_active_duplicate(self, *, grade_level, section, school_year_id, exclude_class_id=None):
        for c in self._db.classes.values():
            if (
                c.is_active
                and c.grade_level == grade_level
                and c.section == section
                and c.school_year_id == int(school_year_id)
                and c.id != exclude_class_id
            ):
                return c.id
        return None

    def create(self, *, grade_level, section, teacher_id, school_year_id, max_capacity):
        cid = self._db.next_id("class")
        self._db.classes[cid] = SchoolClass(
            id=cid,
            grade_level=grade_level,
            section=section,
            teacher_id=teacher_id,
            school_year_id=school_year_id,
            max_capacity=max_capacity,
        )
        return cid

    def update(self, *, class_id, grade_level, section, teacher_id, max_capacity):
        c = self._db.classes.get(int(class_id))
        if c is None:
            return False
        self._db.classes[c.id] = replace(
            c, grade_level=grade_level, section=section, teacher_id=teacher_id, max_capacity=max_capacity
        )
        return True

    def deactivate(self, class_id):
        c = self._db.classes.get(int(class_id))
        if c is None:
            return False
        self._db.classes[c.id] = replace(c, is_active=False)
        return True


class FakeEnrollmentUnitOfWork:
    def __init__(self, repo: "FakeEnrollmentRepo"):
        self._repo = repo
        self._db = repo.db

    def is_enrolled_in_year(self, student_id, school_year_id):
        return bool(self._db.active_in_year(student_id, school_year_id))

    def find_inactive(self, student_id, class_id):
        ids = [
            r["id"] for r in self._db.enrollments.values()
            if r["student_id"] == int(student_id) and r["class_id"] == int(class_id) and not r["is_active"]
        ]
        return max(ids) if ids else None

    def reactivate(self, enrollment_id, *, enrolled_by, enrollment_type="regular", status_reason=None):
        row = self._db.enrollments[int(enrollment_id)]
        row.update(
            is_active=True,
            enrollment_status=EnrollmentStatus.ACTIVE,
            enrolled_by=enrolled_by,
            enrollment_type=enrollment_type,
            status_reason=status_reason,
            enrolled_at=NOW,
            reactivated_at=NOW,
        )

    def insert(self, *, student_id, class_id, enrolled_by, enrollment_type="regular", status_reason=None):
        self._repo.inserts += 1
        if self._repo.fail_on_insert is not None and self._repo.inserts >= self._repo.fail_on_insert:
            raise StorageError("simulated write failure")
        eid = self._db.add_enrollment(student_id, class_id)
        self._db.enrollments[eid].update(
            enrolled_by=enrolled_by, enrollment_type=enrollment_type, status_reason=status_reason
        )
        return eid

    def deactivate(self, *, student_id, class_id, status, changed_by, reason):
        rows = self._db.active_rows(student_id=student_id, class_id=class_id)
        for row in rows:
            row.update(
                is_active=False,
                enrollment_status=status,
                status_changed_at=NOW,
                status_changed_by=changed_by,
                status_reason=reason,
            )
        return len(rows)


class FakeEnrollmentRepo:
    """Unit of work snapshots the rows on entry and restores them on any error."""

    def __init__(self, db: FakeDB):
        self.db = db
        self.fail_on_insert: Optional[int] = None
        self.inserts = 0
        self.race = None

    def get_active(self, student_id, class_id):
        rows = self.db.active_rows(student_id=student_id, class_id=class_id)
        return self.db.to_enrollment(rows[0]) if rows else None

    def get_active_in_year(self, student_id, school_year_id):
        rows = self.db.active_in_year(student_id, school_year_id)
        return self.db.to_enrollment(rows[0]) if rows else None

    def list_history(self, student_id):
        rows = [r for r in self.db.enrollments.values() if r["student_id"] == int(student_id)]
        return [self.db.to_enrollment(r) for r in sorted(rows, key=lambda r: r["id"], reverse=True)]

    @contextmanager
    def unit_of_work(self):
        if self.race is not None:
            # Another operator's write landing between validation and commit.
            race, self.race = self.race, None
            race()
        snapshot = copy.deepcopy(self.db.enrollments)
        next_id = self.db._ids["enrollment"]
        try:
            yield FakeEnrollmentUnitOfWork(self)
        except Exception:
            self.db.enrollments = snapshot
            self.db._ids["enrollment"] = next_id
            raise


class FakePlacementRepo:
    def __init__(self, db: FakeDB):
        self._db = db

    def _source_rows(self, source_year_id):
        """(student, class) pairs actively enrolled in an active source-year class."""
        out = []
        for r in self._db.active_rows():
            s = self._db.students.get(r["student_id"])
            c = self._db.classes.get(r["class_id"])
            if s and s.is_active and c and c.is_active and c.school_year_id == int(source_year_id):
                out.append((s, c))
        return out

    def _source_class(self, student_id, source_year_id):
        for r in self._db.active_in_year(student_id, source_year_id):
            return self._db.classes[r["class_id"]]
        return None

    def list_eligible(self, source_year_id, target_year_id):
        out = [
            EligibleStudent(
                id=s.id,
                student_code=s.student_code,
                first_name=s.first_name,
                last_name=s.last_name,
                lrn=s.lrn,
                source_class_id=c.id,
                source_grade_level=c.grade_level,
                source_section=c.section,
            )
            for s, c in self._source_rows(source_year_id)
            if not self._db.active_in_year(s.id, target_year_id)
        ]
        return sorted(out, key=lambda e: (e.source_grade_level, e.source_section, e.last_name, e.first_name))

    def count_eligible(self, source_year_id, target_year_id):
        return len({e.id for e in self.list_eligible(source_year_id, target_year_id)})

    def count_source_students(self, source_year_id):
        return len({s.id for s, _ in self._source_rows(source_year_id)})

    def list_placed_in_target(self, source_year_id, target_year_id):
        out = []
        for s, c in self._source_rows(source_year_id):
            for r in self._db.active_in_year(s.id, target_year_id):
                ct = self._db.classes[r["class_id"]]
                if not ct.is_active:
                    continue
                out.append(
                    PlacedStudent(
                        id=s.id,
                        student_code=s.student_code,
                        first_name=s.first_name,
                        last_name=s.last_name,
                        lrn=s.lrn,
                        source_grade_level=c.grade_level,
                        source_section=c.section,
                        target_class_id=ct.id,
                        target_grade_level=ct.grade_level,
                        target_section=ct.section,
                    )
                )
        return out

    def _roster(self, s, source_year_id, status, enrolled_at=None):
        src = self._source_class(s.id, source_year_id)
        return RosterEntry(
            id=s.id,
            student_code=s.student_code,
            first_name=s.first_name,
            last_name=s.last_name,
            lrn=s.lrn,
            source_class_id=src.id if src else None,
            source_grade_level=src.grade_level if src else None,
            source_section=src.section if src else None,
            assignment_status=status,
            enrolled_at=enrolled_at,
        )

    def list_saved_in_class(self, class_id, source_year_id):
        out = []
        for r in self._db.active_rows(class_id=class_id):
            s = self._db.students.get(r["student_id"])
            if s and s.is_active:
                out.append(self._roster(s, source_year_id, "saved", r["enrolled_at"]))
        return sorted(out, key=lambda e: (e.last_name, e.first_name))

    def list_students_with_source(self, student_ids, source_year_id):
        out = []
        for sid in student_ids:
            s = self._db.students.get(int(sid))
            if s and s.is_active:
                out.append(self._roster(s, source_year_id, "pending"))
        return sorted(out, key=lambda e: (e.last_name, e.first_name))


class FakeRetryRepo:
    def __init__(self):
        self.items: dict[int, RetryItem] = {}
        self._next = 1

    def enqueue(self, *, operation_type, operation_data, max_retries, next_retry_at):
        qid = self._next
        self._next += 1
        self.items[qid] = RetryItem(
            id=qid,
            operation_type=operation_type,
            operation_data=operation_data,
            retry_count=0,
            max_retries=max_retries,
            status=RetryStatus.PENDING,
            next_retry_at=next_retry_at,
            created_at=NOW,
            updated_at=NOW,
        )
        return qid

    def get_by_id(self, queue_id):
        return self.items.get(int(queue_id))

    def list_due(self, *, now, limit):
        due = [
            i for i in self.items.values()
            if i.status == RetryStatus.PENDING
            and i.retry_count < i.max_retries
            and (i.next_retry_at is None or i.next_retry_at <= now)
        ]
        return sorted(due, key=lambda i: i.id)[:limit]

    def set_status(self, queue_id, status):
        item = self.items[int(queue_id)]
        error = None if status == RetryStatus.COMPLETED else item.error_message
        self.items[item.id] = replace(item, status=status, error_message=error)
        return True

    def record_failure(self, queue_id, *, status, retry_count, error_message, next_retry_at):
        item = self.items[int(queue_id)]
        self.items[item.id] = replace(
            item, status=status, retry_count=retry_count, error_message=error_message, next_retry_at=next_retry_at
        )
        return True

    def count_by_status(self):
        counts: dict[str, int] = {}
        for i in self.items.values():
            counts[i.status.value] = counts.get(i.status.value, 0) + 1
        return counts

    def delete_finished_before(self, cutoff):
        old = [
            i.id for i in self.items.values()
            if i.status in (RetryStatus.COMPLETED, RetryStatus.FAILED) and i.updated_at and i.updated_at < cutoff
        ]
        for qid in old:
            del self.items[qid]
        return len(old)
