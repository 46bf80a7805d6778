from datetime import date

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hrledger.db import get_db
from hrledger.schemas import (
    AttendanceDayDetailRead,
    AttendanceDayRead,
    AttendanceDayViewRead,
    AttendanceSessionRead,
    AttendanceUpdateRequest,
    ClockActionResponse,
    LiveStatusResponse,
    MarkAttendanceRequest,
    OvertimeProjectionResponse,
    SessionHookResponse,
    WorkingHoursOverviewResponse,
)
from hrledger.security import (
    ATTENDANCE_DELETE_ROLES,
    ATTENDANCE_EDITOR_ROLES,
    ATTENDANCE_OVERVIEW_ROLES,
    Actor,
    require_actor,
    require_roles,
)
from hrledger.services.attendance import (
    clock_in,
    clock_out,
    delete_attendance_day,
    get_attendance_day,
    get_daily_overtime_projection,
    get_live_status,
    get_working_hours_overview,
    list_attendance_days,
    mark_attendance,
    record_login,
    record_logout,
    update_attendance_day,
)
from hrledger.services.company_time import company_date, month_bounds, utcnow
from hrledger.services.requests import SELF_SERVICE_ROLES

router = APIRouter(tags=["attendance"])


@router.post("/api/attendance/clock-in", response_model=ClockActionResponse)
def clock_in_endpoint(
    request: Request,
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> ClockActionResponse:
    session = clock_in(db, actor.user_id, utcnow())
    request.state.session_id = session.id
    return ClockActionResponse(message="Clocked in successfully", session=AttendanceSessionRead.model_validate(session))


@router.post("/api/attendance/clock-out", response_model=ClockActionResponse)
def clock_out_endpoint(
    request: Request,
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> ClockActionResponse:
    session = clock_out(db, actor.user_id, utcnow())
    request.state.session_id = session.id
    return ClockActionResponse(message="Clocked out successfully", session=AttendanceSessionRead.model_validate(session))


@router.get("/api/attendance/status", response_model=LiveStatusResponse)
def live_status_endpoint(
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> LiveStatusResponse:
    return LiveStatusResponse.model_validate(get_live_status(db, actor.user_id, utcnow()))


@router.get("/api/attendance/overtime", response_model=OvertimeProjectionResponse)
def overtime_projection_endpoint(
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> OvertimeProjectionResponse:
    return OvertimeProjectionResponse.model_validate(get_daily_overtime_projection(db, actor.user_id, utcnow()))


@router.get("/api/attendance", response_model=list[AttendanceDayViewRead])
def list_attendance_endpoint(
    user_id: int | None = Query(default=None, ge=1),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    month: str | None = Query(default=None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> list[AttendanceDayViewRead]:
    scoped_user_id = actor.user_id if actor.role in SELF_SERVICE_ROLES else user_id
    if month is not None:
        start_date, end_date = month_bounds(month)
    views = list_attendance_days(db, user_id=scoped_user_id, start=start_date, end=end_date, now=utcnow())
    return [AttendanceDayViewRead.model_validate(item) for item in views]


@router.post("/api/attendance/mark", response_model=AttendanceDayRead)
def mark_attendance_endpoint(
    payload: MarkAttendanceRequest,
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> AttendanceDayRead:
    now = utcnow()
    work_date = payload.work_date or company_date(now)
    day = mark_attendance(
        db,
        actor.user_id,
        work_date=work_date,
        status=payload.status,
        notes=payload.notes,
        now=now,
    )
    return AttendanceDayRead.model_validate(day)


@router.get("/api/admin/attendance/working-hours", response_model=WorkingHoursOverviewResponse)
def working_hours_endpoint(
    _actor: Actor = Depends(require_roles(ATTENDANCE_OVERVIEW_ROLES)),
    db: Session = Depends(get_db),
) -> WorkingHoursOverviewResponse:
    return WorkingHoursOverviewResponse.model_validate(get_working_hours_overview(db, utcnow()))


@router.post("/api/session/login", response_model=SessionHookResponse)
def login_hook_endpoint(
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> SessionHookResponse:
    session = record_login(db, actor.user_id, utcnow())
    if session is None:
        return SessionHookResponse(message="Already clocked in")
    return SessionHookResponse(message="Clocked in on login", session=AttendanceSessionRead.model_validate(session))


@router.post("/api/session/logout", response_model=SessionHookResponse)
def logout_hook_endpoint(
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> SessionHookResponse:
    session = record_logout(db, actor.user_id, utcnow())
    if session is None:
        return SessionHookResponse(message="No active session to close")
    return SessionHookResponse(message="Clocked out on logout", session=AttendanceSessionRead.model_validate(session))


@router.get("/api/attendance/{day_id}", response_model=AttendanceDayDetailRead)
def get_attendance_day_endpoint(
    day_id: int,
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> AttendanceDayDetailRead:
    view = get_attendance_day(db, day_id, viewer_id=actor.user_id, viewer_role=actor.role, now=utcnow())
    return AttendanceDayDetailRead.model_validate(view)


@router.patch("/api/attendance/{day_id}", response_model=AttendanceDayRead)
def update_attendance_day_endpoint(
    day_id: int,
    payload: AttendanceUpdateRequest,
    actor: Actor = Depends(require_roles(ATTENDANCE_EDITOR_ROLES)),
    db: Session = Depends(get_db),
) -> AttendanceDayRead:
    day = update_attendance_day(
        db,
        day_id,
        actor_id=actor.user_id,
        status=payload.status,
        notes=payload.notes,
    )
    return AttendanceDayRead.model_validate(day)


@router.delete("/api/attendance/{day_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_attendance_day_endpoint(
    day_id: int,
    actor: Actor = Depends(require_roles(ATTENDANCE_DELETE_ROLES)),
    db: Session = Depends(get_db),
) -> None:
    delete_attendance_day(db, day_id, actor_id=actor.user_id)
