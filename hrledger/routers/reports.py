from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hrledger.db import get_db
from hrledger.errors import ValidationError
from hrledger.schemas import DailyHoursRowRead, LeaveReportResponse, LeaveReportRowRead, LopDaysRowRead
from hrledger.security import REPORT_ROLES, Actor, require_roles
from hrledger.services.reports import daily_hours_report, leave_report, lop_day_counts

router = APIRouter(tags=["reports"])


def _ensure_period(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise ValidationError("INVALID_DATE_RANGE", "end_date must be greater than or equal to start_date.")


@router.get("/api/admin/reports/daily-hours", response_model=list[DailyHoursRowRead])
def daily_hours_report_endpoint(
    start_date: date = Query(...),
    end_date: date = Query(...),
    user_id: int | None = Query(default=None, ge=1),
    _actor: Actor = Depends(require_roles(REPORT_ROLES)),
    db: Session = Depends(get_db),
) -> list[DailyHoursRowRead]:
    _ensure_period(start_date, end_date)
    rows = daily_hours_report(db, start=start_date, end=end_date, user_id=user_id)
    return [DailyHoursRowRead.model_validate(row) for row in rows]


@router.get("/api/admin/reports/leave", response_model=LeaveReportResponse)
def leave_report_endpoint(
    start_date: date = Query(...),
    end_date: date = Query(...),
    _actor: Actor = Depends(require_roles(REPORT_ROLES)),
    db: Session = Depends(get_db),
) -> LeaveReportResponse:
    _ensure_period(start_date, end_date)
    rows = leave_report(db, start=start_date, end=end_date)
    return LeaveReportResponse(
        start_date=start_date,
        end_date=end_date,
        rows=[LeaveReportRowRead.model_validate(row) for row in rows],
    )


@router.get("/api/admin/reports/lop-days", response_model=list[LopDaysRowRead])
def lop_days_report_endpoint(
    start_date: date = Query(...),
    end_date: date = Query(...),
    _actor: Actor = Depends(require_roles(REPORT_ROLES)),
    db: Session = Depends(get_db),
) -> list[LopDaysRowRead]:
    _ensure_period(start_date, end_date)
    counts = lop_day_counts(db, start=start_date, end=end_date)
    return [LopDaysRowRead(user_id=user_id, lop_days=days) for user_id, days in sorted(counts.items())]
