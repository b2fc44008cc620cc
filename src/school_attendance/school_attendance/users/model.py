from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: an operator account (admin or teacher).

    Plain data object, no DB access here.
    """

    id: int
    full_name: str
    username: str
    password_hash: str
    role: Role
    is_active: bool = True

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER and self.is_active
