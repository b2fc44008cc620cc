from __future__ import annotations

import pytest

from src.school_attendance.school_attendance.placement.eligibility import (
    filter_students,
    get_filter_options,
    get_suggested_grade,
    suggested_grade_display,
)


@pytest.mark.parametrize(
    "current,expected",
    [
        ("Grade 6", "Grade 7"),
        ("grade 10", "Grade 11"),
        ("Grade12", "Grade 13"),
        ("Grade 12", "Grade 13"),
        ("Kindergarten", "Grade 1"),
        ("K", "Grade 1"),
        ("Unknown", "Unknown"),
        ("", ""),
    ],
)
def test_suggested_grade(current, expected):
    assert get_suggested_grade(current) == expected


def test_suggested_grade_display():
    assert suggested_grade_display("Grade 6") == "Grade 6 → Grade 7"


@pytest.fixture()
def eligible_setup(db, two_years):
    g5b = db.add_class("Grade 5", "B", two_years.src, teacher_id=2)
    ana, ben, cara = db.add_student("Ana", "Reyes"), db.add_student("Ben", "Cruz"), db.add_student("Cara", "Diaz")
    db.add_enrollment(ana.id, two_years.g6a.id)
    db.add_enrollment(ben.id, two_years.g6a.id)
    db.add_enrollment(cara.id, g5b.id)
    # Ben already has a seat next year.
    db.add_enrollment(ben.id, two_years.g7a.id)
    return ana, ben, cara


def test_eligible_excludes_students_enrolled_in_target_year(services, two_years, eligible_setup):
    ana, ben, cara = eligible_setup

    students = services.eligibility.get_eligible_students(two_years.src.id, two_years.tgt.id)

    # Ordered by source grade then section.
    assert [s.id for s in students] == [cara.id, ana.id]
    assert services.eligibility.get_eligible_count(two_years.src.id, two_years.tgt.id) == 2


def test_inactive_students_and_withdrawn_enrollments_are_not_eligible(services, db, two_years):
    gone = db.add_student("Gone", "Student", is_active=False)
    db.add_enrollment(gone.id, two_years.g6a.id)
    left = db.add_student("Left", "Student")
    db.add_enrollment(left.id, two_years.g6a.id, is_active=False)

    assert services.eligibility.get_eligible_students(two_years.src.id, two_years.tgt.id) == []


def test_nonpositive_year_ids_give_nothing(services):
    assert services.eligibility.get_eligible_students(0, 1) == []
    assert services.eligibility.get_eligible_count(1, -1) == 0
    assert services.eligibility.get_available_target_classes(0) == []


def test_suggestions_and_filters(services, two_years, eligible_setup):
    students = services.eligibility.get_eligible_students_with_suggestions(two_years.src.id, two_years.tgt.id)

    assert {s.source_grade_level: s.suggested_grade for s in students} == {"Grade 5": "Grade 6", "Grade 6": "Grade 7"}

    assert [s.source_grade_level for s in filter_students(students, "Grade 6")] == ["Grade 6"]
    assert [s.source_section for s in filter_students(students, section="B")] == ["B"]
    # Empty string means "no filter".
    assert len(filter_students(students, "", "")) == 2

    options = get_filter_options(students)
    assert options.grade_levels == ["Grade 5", "Grade 6"]
    assert options.sections == ["A", "B"]


def test_available_target_classes_by_grade(services, two_years):
    classes = services.eligibility.get_available_target_classes(two_years.tgt.id, "Grade 7")
    assert [c.display_name for c in classes] == ["Grade 7 - A", "Grade 7 - B"]
    assert services.eligibility.get_available_target_classes(two_years.tgt.id, "Grade 8") == []
