"""Company-local calendar arithmetic.

Every conversion between UTC instants and the company's calendar (day
boundaries, the overtime threshold instant, Sunday checks and the 5th-to-5th
pay cycle) goes through this module.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from hrledger.settings import get_settings

IST_FIXED_OFFSET = timezone(timedelta(hours=5, minutes=30), "IST")
SUNDAY = 6


@dataclass(frozen=True, slots=True)
class PayCycle:
    """Half-open window [start, end) of company calendar dates."""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end


@lru_cache
def company_timezone() -> tzinfo:
    raw_name = (get_settings().company_timezone or "").strip() or "Asia/Kolkata"
    try:
        return ZoneInfo(raw_name)
    except (ZoneInfoNotFoundError, ValueError):
        return IST_FIXED_OFFSET


@lru_cache
def overtime_threshold_time() -> time:
    raw_value = (get_settings().overtime_threshold or "").strip() or "17:30"
    hour_text, _, minute_text = raw_value.partition(":")
    return time(int(hour_text), int(minute_text or 0))


def normalize_utc(ts: datetime | None) -> datetime:
    if ts is None:
        return datetime.now(timezone.utc)

    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)

    return ts.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_company_local(ts: datetime) -> datetime:
    return normalize_utc(ts).astimezone(company_timezone())


def company_date(ts: datetime) -> date:
    return to_company_local(ts).date()


def local_day_bounds_utc(day: date) -> tuple[datetime, datetime]:
    tz = company_timezone()
    local_start = datetime.combine(day, time.min, tzinfo=tz)
    local_end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return local_start.astimezone(timezone.utc), local_end.astimezone(timezone.utc)


def overtime_threshold_utc(day: date) -> datetime:
    local_threshold = datetime.combine(day, overtime_threshold_time(), tzinfo=company_timezone())
    return local_threshold.astimezone(timezone.utc)


def is_sunday(day: date) -> bool:
    return day.weekday() == SUNDAY


def first_sunday_in_range(start: date, end: date) -> date | None:
    if end < start:
        return None
    offset = (SUNDAY - start.weekday()) % 7
    candidate = start + timedelta(days=offset)
    if candidate <= end:
        return candidate
    return None


def inclusive_day_count(start: date, end: date) -> int:
    if end < start:
        return 0
    return (end - start).days + 1


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def pay_cycle_for(day: date) -> PayCycle:
    anchor = get_settings().leave_cycle_anchor_day
    if day.day >= anchor:
        start_year, start_month = day.year, day.month
    else:
        start_year, start_month = _shift_month(day.year, day.month, -1)
    end_year, end_month = _shift_month(start_year, start_month, 1)
    return PayCycle(
        start=date(start_year, start_month, anchor),
        end=date(end_year, end_month, anchor),
    )


def days_in_cycle(start: date, end: date, cycle: PayCycle) -> int:
    """Inclusive [start, end] clamped to the half-open cycle; 0 when disjoint."""
    clamped_start = max(start, cycle.start)
    clamped_end = min(end, cycle.end - timedelta(days=1))
    return inclusive_day_count(clamped_start, clamped_end)


def month_bounds(month: str) -> tuple[date, date]:
    """First and last calendar date of a `YYYY-MM` month."""
    year_text, _, month_text = month.partition("-")
    year, month_number = int(year_text), int(month_text)
    last_day = calendar.monthrange(year, month_number)[1]
    return date(year, month_number, 1), date(year, month_number, last_day)
