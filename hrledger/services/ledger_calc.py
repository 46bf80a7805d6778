from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Protocol

from hrledger.services.company_time import company_date, normalize_utc, overtime_threshold_utc

HOURS_QUANT = Decimal("0.01")
OVERTIME_QUANT = Decimal("0.000001")
SECONDS_PER_HOUR = Decimal(3600)
ZERO_HOURS = Decimal("0.00")


class SessionLike(Protocol):
    check_in: datetime
    check_out: datetime | None
    hours_worked: Decimal
    is_overtime: bool
    overtime_hours: Decimal


@dataclass(frozen=True)
class DayTotals:
    total_hours: Decimal
    overtime_hours: Decimal
    is_overtime: bool


@dataclass(frozen=True)
class LiveProjection:
    is_clocked_in: bool
    closed_hours: Decimal
    live_hours: Decimal
    projected_hours: Decimal


@dataclass(frozen=True)
class OvertimeProjection:
    closed_overtime_hours: Decimal
    live_overtime_hours: Decimal
    projected_overtime_hours: Decimal
    threshold_utc: datetime


def round_hours(value: Decimal) -> Decimal:
    return value.quantize(HOURS_QUANT, rounding=ROUND_HALF_UP)


def round_overtime(value: Decimal) -> Decimal:
    return value.quantize(OVERTIME_QUANT, rounding=ROUND_HALF_UP)


def hours_between(start: datetime, end: datetime) -> Decimal:
    """Exact (unrounded) hours between two instants, never negative."""
    delta = normalize_utc(end) - normalize_utc(start)
    micros = delta.days * 86_400_000_000 + delta.seconds * 1_000_000 + delta.microseconds
    if micros <= 0:
        return Decimal(0)
    return Decimal(micros) / Decimal(1_000_000) / SECONDS_PER_HOUR


def session_threshold_utc(check_in: datetime) -> datetime:
    return overtime_threshold_utc(company_date(check_in))


def starts_in_overtime(check_in: datetime) -> bool:
    return normalize_utc(check_in) >= session_threshold_utc(check_in)


def overtime_hours_between(
    check_in: datetime,
    end: datetime,
    *,
    started_in_overtime: bool,
) -> Decimal:
    """Unrounded hours of [check_in, end) at/after the check-in day's threshold."""
    if started_in_overtime:
        return hours_between(check_in, end)
    threshold = session_threshold_utc(check_in)
    end_utc = normalize_utc(end)
    if end_utc <= threshold:
        return Decimal(0)
    overtime_start = max(normalize_utc(check_in), threshold)
    return hours_between(overtime_start, end_utc)


def close_session_hours(
    check_in: datetime,
    check_out: datetime,
    *,
    started_in_overtime: bool,
) -> tuple[Decimal, Decimal]:
    """Return (hours_worked, overtime_hours) for a closed session.

    Worked hours are rounded half-up to 2 dp. Overtime is the portion at or
    after the threshold and is kept at 6 dp, so a session that barely
    crosses 17:30 can store `hours_worked` 0.00 with a non-zero overtime
    (17:29:59 to 17:30:01 stores 0.000278 h, the one second after the
    threshold). A session that started in overtime is overtime in full and
    mirrors its rounded worked hours.
    """
    worked = round_hours(hours_between(check_in, check_out))
    if started_in_overtime:
        return worked, round_overtime(Decimal(worked))
    overtime = overtime_hours_between(check_in, check_out, started_in_overtime=False)
    return worked, round_overtime(overtime)


def fold_day_totals(sessions: Iterable[SessionLike]) -> DayTotals:
    total = ZERO_HOURS
    overtime = Decimal(0)
    is_overtime = False
    for session in sessions:
        if session.is_overtime:
            is_overtime = True
        if session.check_out is None:
            continue
        total += Decimal(session.hours_worked or 0)
        overtime += Decimal(session.overtime_hours or 0)
    return DayTotals(
        total_hours=round_hours(total),
        overtime_hours=round_overtime(overtime),
        is_overtime=is_overtime,
    )


def project_live_hours(sessions: Iterable[SessionLike], now: datetime) -> LiveProjection:
    closed = ZERO_HOURS
    live = Decimal(0)
    is_clocked_in = False
    for session in sessions:
        if session.check_out is None:
            is_clocked_in = True
            live += hours_between(session.check_in, now)
            continue
        closed += Decimal(session.hours_worked or 0)
    return LiveProjection(
        is_clocked_in=is_clocked_in,
        closed_hours=closed,
        live_hours=live,
        projected_hours=closed + live,
    )


def project_overtime_hours(
    sessions: Iterable[SessionLike],
    now: datetime,
    *,
    threshold_utc: datetime,
) -> OvertimeProjection:
    closed = Decimal(0)
    live = Decimal(0)
    for session in sessions:
        if session.check_out is None:
            live += overtime_hours_between(
                session.check_in,
                now,
                started_in_overtime=bool(session.is_overtime),
            )
            continue
        closed += Decimal(session.overtime_hours or 0)
    return OvertimeProjection(
        closed_overtime_hours=closed,
        live_overtime_hours=live,
        projected_overtime_hours=closed + live,
        threshold_utc=threshold_utc,
    )
