from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from hrledger.audit import record_audit
from hrledger.errors import ApiError, ConflictError, NotFoundError
from hrledger.models import (
    AttendanceDay,
    AttendanceSession,
    AttendanceStatus,
    AuditActorType,
    User,
    UserRole,
)
from hrledger.services.company_time import company_date, normalize_utc, overtime_threshold_utc
from hrledger.services.ledger_calc import (
    DayTotals,
    LiveProjection,
    OvertimeProjection,
    close_session_hours,
    fold_day_totals,
    project_live_hours,
    project_overtime_hours,
    round_hours,
    starts_in_overtime,
)
from hrledger.services.requests import SELF_SERVICE_ROLES

logger = logging.getLogger("hrledger.attendance")

ACTIVE_SESSION_MESSAGE = "Active session in progress, clock out first."
NO_ACTIVE_SESSION_MESSAGE = "No active session found, clock in first."


@dataclass
class LiveStatus:
    user_id: int
    work_date: date
    has_attendance: bool
    is_clocked_in: bool
    stored_total_hours: Decimal
    projected_total_hours: Decimal
    live_session_hours: Decimal
    active_session: AttendanceSession | None = None
    sessions: list[AttendanceSession] = field(default_factory=list)


@dataclass
class DailyOvertimeProjection:
    user_id: int
    work_date: date
    threshold_utc: datetime
    closed_overtime_hours: Decimal
    live_overtime_hours: Decimal
    projected_overtime_hours: Decimal
    is_overtime: bool


@dataclass
class AttendanceDayView:
    id: int
    user_id: int
    work_date: date
    status: AttendanceStatus
    notes: str | None
    first_check_in: datetime | None
    last_check_out: datetime | None
    working_hours: Decimal
    overtime_hours: Decimal
    is_overtime: bool
    is_active: bool
    session_count: int
    user_name: str | None = None
    department: str | None = None
    sessions: list[AttendanceSession] = field(default_factory=list)


@dataclass
class WorkingHoursOverview:
    work_date: date
    employees: list[AttendanceDayView]
    total_employees_present: int
    active_employees: int
    total_hours_today: Decimal
    total_overtime_today: Decimal


def _load_day(
    db: Session,
    *,
    user_id: int,
    work_date: date,
    lock: bool = False,
) -> AttendanceDay | None:
    stmt = select(AttendanceDay).where(
        AttendanceDay.user_id == user_id,
        AttendanceDay.work_date == work_date,
    )
    if lock:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return db.scalar(stmt)


def _get_or_create_day(db: Session, *, user_id: int, work_date: date) -> AttendanceDay:
    day = _load_day(db, user_id=user_id, work_date=work_date, lock=True)
    if day is not None:
        return day

    day = AttendanceDay(
        user_id=user_id,
        work_date=work_date,
        status=AttendanceStatus.PRESENT,
        total_hours=Decimal("0.00"),
        overtime_hours=Decimal("0"),
        is_overtime=False,
    )
    db.add(day)
    try:
        db.flush()
    except IntegrityError:
        # Another request created the day first; nothing else is pending in this transaction.
        db.rollback()
        day = _load_day(db, user_id=user_id, work_date=work_date, lock=True)
        if day is None:
            raise
    return day


def _find_open_session(db: Session, attendance_day_id: int) -> AttendanceSession | None:
    return db.scalar(
        select(AttendanceSession)
        .where(
            AttendanceSession.attendance_day_id == attendance_day_id,
            AttendanceSession.check_out.is_(None),
        )
        .order_by(AttendanceSession.check_in.desc(), AttendanceSession.id.desc())
        .execution_options(populate_existing=True)
    )


def _load_sessions(db: Session, attendance_day_id: int) -> list[AttendanceSession]:
    return list(
        db.scalars(
            select(AttendanceSession)
            .where(AttendanceSession.attendance_day_id == attendance_day_id)
            .order_by(AttendanceSession.check_in.asc(), AttendanceSession.id.asc())
        ).all()
    )


def _count_sessions(db: Session, attendance_day_id: int) -> int:
    return int(
        db.scalar(
            select(func.count(AttendanceSession.id)).where(
                AttendanceSession.attendance_day_id == attendance_day_id
            )
        )
        or 0
    )


def recompute_day_totals(day: AttendanceDay, sessions: list[AttendanceSession] | None = None) -> DayTotals:
    totals = fold_day_totals(sessions if sessions is not None else day.sessions)
    day.total_hours = totals.total_hours
    day.overtime_hours = totals.overtime_hours
    day.is_overtime = totals.is_overtime
    return totals


def _open_session(db: Session, day: AttendanceDay, now_utc: datetime) -> tuple[AttendanceSession, bool]:
    """Insert an open session on a locked day; the partial unique index rejects a concurrent one."""
    is_first_session = _count_sessions(db, day.id) == 0
    in_overtime = starts_in_overtime(now_utc)
    session = AttendanceSession(
        attendance_day_id=day.id,
        check_in=now_utc,
        check_out=None,
        hours_worked=Decimal("0.00"),
        is_overtime=in_overtime,
        overtime_hours=Decimal("0"),
    )
    db.add(session)
    if is_first_session:
        day.status = AttendanceStatus.PRESENT
    if in_overtime:
        day.is_overtime = True

    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("ACTIVE_SESSION_EXISTS", ACTIVE_SESSION_MESSAGE) from exc
    return session, is_first_session


def clock_in(db: Session, user_id: int, now: datetime | None = None) -> AttendanceSession:
    now_utc = normalize_utc(now)
    work_date = company_date(now_utc)
    day = _get_or_create_day(db, user_id=user_id, work_date=work_date)

    if _find_open_session(db, day.id) is not None:
        db.rollback()
        raise ConflictError("ACTIVE_SESSION_EXISTS", ACTIVE_SESSION_MESSAGE)

    session, is_first_session = _open_session(db, day, now_utc)
    in_overtime = bool(session.is_overtime)

    record_audit(
        db,
        actor_type=AuditActorType.USER,
        actor_id=str(user_id),
        action="ATTENDANCE_CLOCK_IN",
        entity_type="attendance_session",
        entity_id=str(session.id),
        details={"work_date": work_date.isoformat(), "is_overtime": in_overtime},
    )
    db.commit()
    logger.info(
        "clock_in",
        extra={
            "user_id": user_id,
            "work_date": work_date.isoformat(),
            "session_id": session.id,
            "is_overtime": in_overtime,
            "first_session": is_first_session,
        },
    )
    return session


def clock_out(db: Session, user_id: int, now: datetime | None = None) -> AttendanceSession:
    now_utc = normalize_utc(now)
    work_date = company_date(now_utc)
    day = _load_day(db, user_id=user_id, work_date=work_date, lock=True)
    if day is None:
        db.rollback()
        raise NotFoundError("ATTENDANCE_NOT_FOUND", "No attendance record found for today.")

    session = _find_open_session(db, day.id)
    if session is None:
        db.rollback()
        raise ConflictError("NO_ACTIVE_SESSION", NO_ACTIVE_SESSION_MESSAGE)

    started_in_overtime = bool(session.is_overtime)
    hours_worked, overtime_hours = close_session_hours(
        session.check_in,
        now_utc,
        started_in_overtime=started_in_overtime,
    )
    session.check_out = now_utc
    session.hours_worked = hours_worked
    session.overtime_hours = overtime_hours
    session.is_overtime = started_in_overtime or overtime_hours > 0
    db.flush()

    totals = recompute_day_totals(day, _load_sessions(db, day.id))
    record_audit(
        db,
        actor_type=AuditActorType.USER,
        actor_id=str(user_id),
        action="ATTENDANCE_CLOCK_OUT",
        entity_type="attendance_session",
        entity_id=str(session.id),
        details={
            "work_date": work_date.isoformat(),
            "hours_worked": str(hours_worked),
            "overtime_hours": str(overtime_hours),
        },
    )
    db.commit()
    logger.info(
        "clock_out",
        extra={
            "user_id": user_id,
            "work_date": work_date.isoformat(),
            "session_id": session.id,
            "hours_worked": hours_worked,
            "overtime_hours": overtime_hours,
            "day_total_hours": totals.total_hours,
        },
    )
    return session


def record_login(db: Session, user_id: int, now: datetime | None = None) -> AttendanceSession | None:
    try:
        return clock_in(db, user_id, now)
    except ConflictError:
        logger.info("login_already_clocked_in", extra={"user_id": user_id})
        return None


def record_logout(db: Session, user_id: int, now: datetime | None = None) -> AttendanceSession | None:
    try:
        return clock_out(db, user_id, now)
    except (NotFoundError, ConflictError) as exc:
        logger.info("logout_without_active_session", extra={"user_id": user_id, "code": exc.code})
        return None


def get_live_status(db: Session, user_id: int, now: datetime | None = None) -> LiveStatus:
    now_utc = normalize_utc(now)
    work_date = company_date(now_utc)
    day = _load_day(db, user_id=user_id, work_date=work_date)
    if day is None:
        return LiveStatus(
            user_id=user_id,
            work_date=work_date,
            has_attendance=False,
            is_clocked_in=False,
            stored_total_hours=Decimal("0.00"),
            projected_total_hours=Decimal("0"),
            live_session_hours=Decimal("0"),
        )

    sessions = _load_sessions(db, day.id)
    projection: LiveProjection = project_live_hours(sessions, now_utc)
    active_session = next((item for item in sessions if item.check_out is None), None)
    return LiveStatus(
        user_id=user_id,
        work_date=work_date,
        has_attendance=True,
        is_clocked_in=projection.is_clocked_in,
        stored_total_hours=Decimal(day.total_hours),
        projected_total_hours=projection.projected_hours,
        live_session_hours=projection.live_hours,
        active_session=active_session,
        sessions=sessions,
    )


def get_daily_overtime_projection(
    db: Session,
    user_id: int,
    now: datetime | None = None,
) -> DailyOvertimeProjection:
    now_utc = normalize_utc(now)
    work_date = company_date(now_utc)
    threshold = overtime_threshold_utc(work_date)
    day = _load_day(db, user_id=user_id, work_date=work_date)
    sessions = _load_sessions(db, day.id) if day is not None else []

    projection: OvertimeProjection = project_overtime_hours(sessions, now_utc, threshold_utc=threshold)
    return DailyOvertimeProjection(
        user_id=user_id,
        work_date=work_date,
        threshold_utc=threshold,
        closed_overtime_hours=projection.closed_overtime_hours,
        live_overtime_hours=projection.live_overtime_hours,
        projected_overtime_hours=projection.projected_overtime_hours,
        is_overtime=bool(day is not None and day.is_overtime) or projection.projected_overtime_hours > 0,
    )


def mark_attendance(
    db: Session,
    user_id: int,
    *,
    work_date: date,
    status: AttendanceStatus,
    notes: str | None = None,
    now: datetime | None = None,
) -> AttendanceDay:
    """Set a day's status; marking today PRESENT also opens a session when none is open."""
    now_utc = normalize_utc(now)
    day = _get_or_create_day(db, user_id=user_id, work_date=work_date)
    day.status = status
    if notes is not None:
        day.notes = notes

    opened_session: AttendanceSession | None = None
    if (
        status == AttendanceStatus.PRESENT
        and work_date == company_date(now_utc)
        and _find_open_session(db, day.id) is None
    ):
        opened_session, _ = _open_session(db, day, now_utc)

    record_audit(
        db,
        actor_type=AuditActorType.USER,
        actor_id=str(user_id),
        action="ATTENDANCE_MARKED",
        entity_type="attendance_day",
        entity_id=str(day.id),
        details={
            "work_date": work_date.isoformat(),
            "status": status.value,
            "opened_session_id": opened_session.id if opened_session is not None else None,
        },
    )
    db.commit()
    db.refresh(day)
    if opened_session is not None:
        logger.info(
            "clock_in",
            extra={
                "user_id": user_id,
                "work_date": work_date.isoformat(),
                "session_id": opened_session.id,
                "is_overtime": bool(opened_session.is_overtime),
                "source": "mark_attendance",
            },
        )
    return day


def _load_day_by_id(db: Session, day_id: int, *, lock: bool = False) -> AttendanceDay:
    stmt = select(AttendanceDay).where(AttendanceDay.id == day_id)
    if lock:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    else:
        stmt = stmt.options(
            selectinload(AttendanceDay.sessions),
            selectinload(AttendanceDay.user),
        ).execution_options(populate_existing=True)
    day = db.scalar(stmt)
    if day is None:
        db.rollback()
        raise NotFoundError("ATTENDANCE_NOT_FOUND", "Attendance record not found.")
    return day


def get_attendance_day(
    db: Session,
    day_id: int,
    *,
    viewer_id: int,
    viewer_role: UserRole,
    now: datetime | None = None,
) -> AttendanceDayView:
    day = _load_day_by_id(db, day_id)
    if viewer_role in SELF_SERVICE_ROLES and day.user_id != viewer_id:
        raise ApiError(status_code=403, code="FORBIDDEN", message="You can only view your own attendance.")
    return build_day_view(day, normalize_utc(now), include_sessions=True)


def update_attendance_day(
    db: Session,
    day_id: int,
    *,
    actor_id: int,
    status: AttendanceStatus | None = None,
    notes: str | None = None,
) -> AttendanceDay:
    day = _load_day_by_id(db, day_id, lock=True)
    changes: dict[str, str] = {}
    if status is not None and status != day.status:
        changes["status"] = status.value
        day.status = status
    if notes is not None and notes != day.notes:
        changes["notes"] = notes
        day.notes = notes

    record_audit(
        db,
        actor_type=AuditActorType.USER,
        actor_id=str(actor_id),
        action="ATTENDANCE_UPDATED",
        entity_type="attendance_day",
        entity_id=str(day.id),
        details={"user_id": day.user_id, "work_date": day.work_date.isoformat(), "changes": changes},
    )
    db.commit()
    db.refresh(day)
    return day


def delete_attendance_day(db: Session, day_id: int, *, actor_id: int) -> None:
    day = _load_day_by_id(db, day_id, lock=True)
    sessions = _load_sessions(db, day.id)
    details = {
        "user_id": day.user_id,
        "work_date": day.work_date.isoformat(),
        "session_count": len(sessions),
    }

    for session in sessions:
        db.delete(session)
    db.delete(day)
    record_audit(
        db,
        actor_type=AuditActorType.USER,
        actor_id=str(actor_id),
        action="ATTENDANCE_DELETED",
        entity_type="attendance_day",
        entity_id=str(day_id),
        details=details,
    )
    db.commit()
    logger.info("attendance_day_deleted", extra={"day_id": day_id, "actor_id": actor_id, **details})


def build_day_view(day: AttendanceDay, now: datetime, *, include_sessions: bool = False) -> AttendanceDayView:
    sessions = list(day.sessions)
    threshold = overtime_threshold_utc(day.work_date)
    live = project_live_hours(sessions, now)
    overtime = project_overtime_hours(sessions, now, threshold_utc=threshold)
    user = day.user
    return AttendanceDayView(
        id=day.id,
        user_id=day.user_id,
        work_date=day.work_date,
        status=day.status,
        notes=day.notes,
        first_check_in=normalize_utc(sessions[0].check_in) if sessions else None,
        last_check_out=(
            normalize_utc(sessions[-1].check_out)
            if sessions and not live.is_clocked_in and sessions[-1].check_out is not None
            else None
        ),
        working_hours=round_hours(live.projected_hours),
        overtime_hours=round_hours(overtime.projected_overtime_hours),
        is_overtime=bool(day.is_overtime) or overtime.projected_overtime_hours > 0,
        is_active=live.is_clocked_in,
        session_count=len(sessions),
        user_name=user.full_name if user is not None else None,
        department=user.department if user is not None else None,
        sessions=sessions if include_sessions else [],
    )


def list_attendance_days(
    db: Session,
    *,
    user_id: int | None,
    start: date | None = None,
    end: date | None = None,
    now: datetime | None = None,
) -> list[AttendanceDayView]:
    now_utc = normalize_utc(now)
    stmt = (
        select(AttendanceDay)
        .options(selectinload(AttendanceDay.sessions), selectinload(AttendanceDay.user))
        .order_by(AttendanceDay.work_date.desc(), AttendanceDay.id.desc())
    )
    if user_id is not None:
        stmt = stmt.where(AttendanceDay.user_id == user_id)
    if start is not None:
        stmt = stmt.where(AttendanceDay.work_date >= start)
    if end is not None:
        stmt = stmt.where(AttendanceDay.work_date <= end)
    return [build_day_view(day, now_utc) for day in db.scalars(stmt).all()]


def get_working_hours_overview(db: Session, now: datetime | None = None) -> WorkingHoursOverview:
    now_utc = normalize_utc(now)
    work_date = company_date(now_utc)
    days = db.scalars(
        select(AttendanceDay)
        .join(User, User.id == AttendanceDay.user_id)
        .options(selectinload(AttendanceDay.sessions), selectinload(AttendanceDay.user))
        .where(
            AttendanceDay.work_date == work_date,
            AttendanceDay.status == AttendanceStatus.PRESENT,
        )
        .order_by(User.full_name.asc(), AttendanceDay.id.asc())
    ).all()

    employees = [build_day_view(day, now_utc) for day in days]
    return WorkingHoursOverview(
        work_date=work_date,
        employees=employees,
        total_employees_present=len(employees),
        active_employees=sum(1 for item in employees if item.is_active),
        total_hours_today=round_hours(sum((item.working_hours for item in employees), Decimal(0))),
        total_overtime_today=round_hours(sum((item.overtime_hours for item in employees), Decimal(0))),
    )
