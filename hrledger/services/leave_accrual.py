from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrledger.errors import ValidationError
from hrledger.models import LeaveRequest, RequestStatus, UserRole
from hrledger.services.company_time import (
    PayCycle,
    company_date,
    days_in_cycle,
    first_sunday_in_range,
    inclusive_day_count,
    is_sunday,
    normalize_utc,
    pay_cycle_for,
)
from hrledger.settings import get_settings

INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
SUBMISSION_ON_SUNDAY = "SUBMISSION_ON_SUNDAY"
RANGE_CONTAINS_SUNDAY = "RANGE_CONTAINS_SUNDAY"


@dataclass(frozen=True)
class LeaveEvaluation:
    is_loss_of_pay: bool
    requested_days: int
    approved_days_used_in_cycle: int
    free_days_allowed: int
    remaining_free_days: int
    cycle: PayCycle
    exempt: bool = False


def validate_submission_dates(start_date: date, end_date: date, submission_time: datetime) -> None:
    if end_date < start_date:
        raise ValidationError(INVALID_DATE_RANGE, "end_date must be greater than or equal to start_date.")

    if is_sunday(company_date(submission_time)):
        raise ValidationError(SUBMISSION_ON_SUNDAY, "Requests cannot be submitted on a Sunday.")

    sunday = first_sunday_in_range(start_date, end_date)
    if sunday is not None:
        raise ValidationError(
            RANGE_CONTAINS_SUNDAY,
            f"Requested range includes Sunday {sunday.isoformat()}, which is a company holiday.",
        )


def approved_days_in_cycle(db: Session, *, user_id: int, cycle: PayCycle) -> int:
    last_cycle_day = cycle.end - timedelta(days=1)
    approved = db.scalars(
        select(LeaveRequest).where(
            LeaveRequest.user_id == user_id,
            LeaveRequest.status == RequestStatus.APPROVED,
            LeaveRequest.start_date <= last_cycle_day,
            LeaveRequest.end_date >= cycle.start,
        )
    ).all()
    return sum(days_in_cycle(item.start_date, item.end_date, cycle) for item in approved)


def evaluate_leave_request(
    db: Session,
    *,
    user_id: int,
    role: UserRole,
    start_date: date,
    end_date: date,
    submission_time: datetime,
) -> LeaveEvaluation:
    """Decide whether a new leave request is loss-of-pay.

    The reference cycle comes from the submission timestamp, not from the
    requested dates. The flag is all-or-nothing for the whole request.
    """
    if end_date < start_date:
        raise ValidationError(INVALID_DATE_RANGE, "end_date must be greater than or equal to start_date.")

    cycle = pay_cycle_for(company_date(normalize_utc(submission_time)))
    requested_days = inclusive_day_count(start_date, end_date)
    free_days_allowed = get_settings().free_leave_days_per_cycle

    if role == UserRole.ADMIN:
        return LeaveEvaluation(
            is_loss_of_pay=False,
            requested_days=requested_days,
            approved_days_used_in_cycle=0,
            free_days_allowed=free_days_allowed,
            remaining_free_days=free_days_allowed,
            cycle=cycle,
            exempt=True,
        )

    used = approved_days_in_cycle(db, user_id=user_id, cycle=cycle)
    remaining = max(0, free_days_allowed - used)
    return LeaveEvaluation(
        is_loss_of_pay=requested_days > remaining,
        requested_days=requested_days,
        approved_days_used_in_cycle=used,
        free_days_allowed=free_days_allowed,
        remaining_free_days=remaining,
        cycle=cycle,
    )
