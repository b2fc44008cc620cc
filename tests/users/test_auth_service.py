from __future__ import annotations

from dataclasses import replace

import pytest
from werkzeug.security import generate_password_hash

from src.school_attendance.school_attendance.core.enums import Role
from src.school_attendance.school_attendance.core.exceptions import AuthenticationError, ValidationError
from src.school_attendance.school_attendance.users.service import AuthService

from tests.fakes import FakeUserRepo


@pytest.fixture()
def auth(db):
    admin = db.users[1]
    db.users[1] = replace(admin, password_hash=generate_password_hash("admin123"))
    return AuthService(FakeUserRepo(db))


def test_authenticate_returns_session_user(auth):
    user = auth.authenticate("admin.demo", "admin123")
    assert user.user_id == 1
    assert user.role == Role.ADMIN
    assert user.full_name == "Admin Demo"


def test_wrong_password_and_unknown_user(auth):
    with pytest.raises(AuthenticationError):
        auth.authenticate("admin.demo", "nope")
    with pytest.raises(AuthenticationError):
        auth.authenticate("ghost", "admin123")


def test_placeholder_hash_never_matches(auth):
    # Teacher Demo is seeded with a non-hash value.
    with pytest.raises(AuthenticationError):
        auth.authenticate("teacher.demo", "x")


def test_username_required(auth):
    with pytest.raises(ValidationError):
        auth.authenticate("  ", "admin123")
