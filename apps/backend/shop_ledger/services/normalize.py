"""Money and calendar-day normalization shared by every report path.

All report amount math goes through ``to_number`` and all date-range filters
go through ``parse_strict_date`` so that ``2024-01-01..2024-01-31`` always
means the same absolute instants regardless of server timezone.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import UTC, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_START_OF_DAY = time(0, 0, 0, 0)
_END_OF_DAY = time(23, 59, 59, 999000)
_CENT = Decimal("0.01")


class InvalidDateError(ValueError):
    """Raised when a date filter is not a YYYY-MM-DD calendar day."""


class InvalidRangeError(ValueError):
    """Raised when a date range starts after it ends."""


@dataclass(frozen=True)
class DateWindow:
    """Inclusive UTC report window; either bound may be open."""

    start: datetime | None = None
    end: datetime | None = None

    @property
    def is_filtered(self) -> bool:
        return self.start is not None or self.end is not None

    def as_metadata(self) -> dict[str, str | None]:
        return {
            "start_date": self.start.date().isoformat() if self.start else None,
            "end_date": self.end.date().isoformat() if self.end else None,
        }


def parse_strict_date(value: Any, end_of_day: bool = False) -> datetime:
    """Parse a ``YYYY-MM-DD`` day into the first or last millisecond of it in UTC.

    A trailing time part (``2024-03-15T10:00``) is discarded; only the calendar
    day counts.
    """
    if not isinstance(value, str):
        raise InvalidDateError(f"Invalid date format: {value!r}. Expected YYYY-MM-DD")

    day_part = value.split("T", 1)[0].strip()
    match = _DATE_PREFIX.match(day_part)
    if not match:
        raise InvalidDateError(f"Invalid date format: {value}. Expected YYYY-MM-DD")

    year, month, day = (int(part) for part in match.groups())
    try:
        day_start = datetime(year, month, day, tzinfo=UTC)
    except ValueError as exc:
        raise InvalidDateError(f"Invalid date: {value}") from exc

    return datetime.combine(day_start.date(), _END_OF_DAY if end_of_day else _START_OF_DAY, tzinfo=UTC)


def parse_date_range(start: str | None, end: str | None) -> DateWindow:
    """Build a report window from optional ``YYYY-MM-DD`` bounds."""
    start_at = parse_strict_date(start, end_of_day=False) if start else None
    end_at = parse_strict_date(end, end_of_day=True) if end else None

    if start_at and end_at and start_at > end_at:
        raise InvalidRangeError("Start date cannot be after end date")

    return DateWindow(start=start_at, end=end_at)


def day_window(day: str) -> DateWindow:
    """Window covering exactly one calendar day."""
    return DateWindow(
        start=parse_strict_date(day, end_of_day=False),
        end=parse_strict_date(day, end_of_day=True),
    )


def to_number(value: Any, default: Decimal | int = 0) -> Decimal:
    """Coerce ``value`` to a finite Decimal, falling back to ``default``. Never raises."""
    fallback = default if isinstance(default, Decimal) else Decimal(default)

    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, Decimal):
        return value if value.is_finite() else fallback
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return fallback
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation:
            return fallback
        return parsed if parsed.is_finite() else fallback
    return fallback


def round_money(value: Decimal | int) -> Decimal:
    """Round to cents with half-up rounding. Only used on final outputs."""
    return to_number(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from the store."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
