from __future__ import annotations

from datetime import date, datetime, timedelta


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_optional_date(value: str | None) -> date | None:
    v = (value or "").strip()
    return parse_iso_date(v) if v else None


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def minutes_after(moment: datetime, minutes: int) -> datetime:
    return moment + timedelta(minutes=int(minutes))


def file_timestamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d_%H%M%S")
