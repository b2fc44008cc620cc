from __future__ import annotations

from datetime import date

import pytest

from src.school_attendance.school_attendance.core.exceptions import (
    DuplicateNameError,
    InvalidFormatError,
    NotFoundError,
    ValidationError,
)
from src.school_attendance.school_attendance.school_years.service import validate_name


@pytest.mark.parametrize(
    "name,expected",
    [
        ("2024-2025", True),
        ("1900-1901", True),
        ("2024-2026", False),
        ("2025-2024", False),
        ("24-25", False),
        ("2024/2025", False),
        ("1899-1900", False),
        ("", False),
    ],
)
def test_validate_name(name, expected):
    assert validate_name(name) is expected


def test_create_rejects_bad_format_and_duplicates(services, db):
    with pytest.raises(InvalidFormatError, match="YYYY-YYYY"):
        services.years.create("2024-25")

    services.years.create("2024-2025")
    with pytest.raises(DuplicateNameError, match="2024-2025 already exists"):
        services.years.create("2024-2025")


def test_create_rejects_end_before_start(services):
    with pytest.raises(ValidationError):
        services.years.create("2024-2025", date(2025, 6, 1), date(2024, 6, 1))


def test_only_one_active_year_after_repeated_activation(services, db):
    ids = [services.years.create(n) for n in ("2022-2023", "2023-2024", "2024-2025")]

    services.years.set_active(ids[0])
    services.years.set_active(ids[2])
    services.years.set_active(ids[1])

    active = [y for y in services.years.list_all() if y.is_active]
    assert [y.id for y in active] == [ids[1]]
    assert services.years.get_active().name == "2023-2024"


def test_set_active_unknown_year(services):
    with pytest.raises(NotFoundError):
        services.years.set_active(99)


def test_lock_and_unlock_are_idempotent(services, db):
    year = db.add_year("2024-2025")

    first = services.years.lock(year.id, locked_by=1)
    assert first.success and not first.already_locked
    assert first.message == "School year enrollment locked successfully"
    assert services.years.is_enrollment_locked(year.id)

    again = services.years.lock(year.id, locked_by=1)
    assert again.success and again.already_locked
    assert again.message == "School year enrollment is already locked"

    opened = services.years.unlock(year.id)
    assert opened.success and not opened.already_unlocked
    assert not services.years.is_enrollment_locked(year.id)

    assert services.years.unlock(year.id).already_unlocked


def test_list_all_newest_first(services):
    for n in ("2022-2023", "2024-2025", "2023-2024"):
        services.years.create(n)
    assert [y.name for y in services.years.list_all()] == ["2024-2025", "2023-2024", "2022-2023"]
