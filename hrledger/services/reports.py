"""Reporting aggregates.

Everything here reads stored rows as they are: per-session hours and
overtime were fixed when the session closed and `is_loss_of_pay` was fixed
when the request was submitted, so historical reports stay stable if the
overtime threshold or the free-day policy changes later.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hrledger.models import AttendanceDay, AttendanceSession, LeaveRequest, RequestStatus, User
from hrledger.services.company_time import inclusive_day_count


@dataclass
class DailyHoursRow:
    user_id: int
    work_date: date
    status: str
    total_hours: Decimal
    overtime_hours: Decimal
    is_overtime: bool
    session_count: int


@dataclass
class LeaveReportRow:
    user_id: int
    full_name: str
    department: str | None
    leave_days: int
    lop_days: int
    lop_request_count: int
    request_ids: list[int] = field(default_factory=list)


def daily_hours_report(
    db: Session,
    *,
    start: date,
    end: date,
    user_id: int | None = None,
) -> list[DailyHoursRow]:
    session_counts = (
        select(
            AttendanceSession.attendance_day_id.label("day_id"),
            func.count(AttendanceSession.id).label("session_count"),
        )
        .group_by(AttendanceSession.attendance_day_id)
        .subquery()
    )
    stmt = (
        select(AttendanceDay, func.coalesce(session_counts.c.session_count, 0))
        .outerjoin(session_counts, session_counts.c.day_id == AttendanceDay.id)
        .where(AttendanceDay.work_date >= start, AttendanceDay.work_date <= end)
        .order_by(AttendanceDay.work_date.asc(), AttendanceDay.user_id.asc())
    )
    if user_id is not None:
        stmt = stmt.where(AttendanceDay.user_id == user_id)

    return [
        DailyHoursRow(
            user_id=day.user_id,
            work_date=day.work_date,
            status=day.status.value,
            total_hours=Decimal(day.total_hours),
            overtime_hours=Decimal(day.overtime_hours),
            is_overtime=bool(day.is_overtime),
            session_count=int(count),
        )
        for day, count in db.execute(stmt).all()
    ]


def _clamped_days(leave: LeaveRequest, start: date, end: date) -> int:
    return inclusive_day_count(max(leave.start_date, start), min(leave.end_date, end))


def _approved_leaves_in_period(db: Session, start: date, end: date) -> list[LeaveRequest]:
    return list(
        db.scalars(
            select(LeaveRequest)
            .where(
                LeaveRequest.status == RequestStatus.APPROVED,
                LeaveRequest.start_date <= end,
                LeaveRequest.end_date >= start,
            )
            .order_by(LeaveRequest.start_date.asc(), LeaveRequest.id.asc())
        ).all()
    )


def lop_day_counts(db: Session, *, start: date, end: date) -> dict[int, int]:
    counts: dict[int, int] = defaultdict(int)
    for leave in _approved_leaves_in_period(db, start, end):
        if leave.is_loss_of_pay:
            counts[leave.user_id] += _clamped_days(leave, start, end)
    return dict(counts)


def leave_report(db: Session, *, start: date, end: date) -> list[LeaveReportRow]:
    users = db.scalars(select(User).where(User.is_active.is_(True)).order_by(User.full_name.asc())).all()
    rows = {
        user.id: LeaveReportRow(
            user_id=user.id,
            full_name=user.full_name,
            department=user.department,
            leave_days=0,
            lop_days=0,
            lop_request_count=0,
        )
        for user in users
    }

    for leave in _approved_leaves_in_period(db, start, end):
        row = rows.get(leave.user_id)
        if row is None:
            continue
        days = _clamped_days(leave, start, end)
        row.leave_days += days
        row.request_ids.append(leave.id)
        if leave.is_loss_of_pay:
            row.lop_days += days
            row.lop_request_count += 1

    return list(rows.values())
