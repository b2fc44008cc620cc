from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Student:
    """Domain entity: Student."""

    id: int
    student_code: str
    first_name: str
    last_name: str
    lrn: Optional[str] = None
    is_active: bool = True

    @property
    def full_name(self) -> str:
        # "Last, First" is how class lists and exports sort and show names.
        return f"{self.last_name}, {self.first_name}".strip(", ")
