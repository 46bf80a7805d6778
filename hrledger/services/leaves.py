from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrledger.audit import record_audit
from hrledger.errors import ApiError, NotFoundError
from hrledger.models import AuditActorType, LeaveRequest, RequestStatus, UserRole
from hrledger.services.company_time import normalize_utc
from hrledger.services.leave_accrual import evaluate_leave_request, validate_submission_dates
from hrledger.services.requests import apply_decision, lock_requesting_user, scope_request_query

logger = logging.getLogger("hrledger.leaves")


def submit_leave_request(
    db: Session,
    *,
    user_id: int,
    role: UserRole,
    start_date: date,
    end_date: date,
    reason: str,
    now: datetime | None = None,
) -> LeaveRequest:
    submitted_at = normalize_utc(now)
    validate_submission_dates(start_date, end_date, submitted_at)

    if lock_requesting_user(db, user_id) is None:
        db.rollback()
        raise NotFoundError("USER_NOT_FOUND", "User not found.")

    evaluation = evaluate_leave_request(
        db,
        user_id=user_id,
        role=role,
        start_date=start_date,
        end_date=end_date,
        submission_time=submitted_at,
    )
    leave = LeaveRequest(
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        reason=reason,
        status=RequestStatus.PENDING,
        is_loss_of_pay=evaluation.is_loss_of_pay,
        created_at=submitted_at,
    )
    db.add(leave)
    db.flush()
    record_audit(
        db,
        actor_type=AuditActorType.USER,
        actor_id=str(user_id),
        action="LEAVE_REQUEST_SUBMITTED",
        entity_type="leave_request",
        entity_id=str(leave.id),
        details={
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "is_loss_of_pay": evaluation.is_loss_of_pay,
            "requested_days": evaluation.requested_days,
            "approved_days_used_in_cycle": evaluation.approved_days_used_in_cycle,
            "cycle_start": evaluation.cycle.start.isoformat(),
            "cycle_end": evaluation.cycle.end.isoformat(),
        },
    )
    db.commit()
    db.refresh(leave)
    logger.info(
        "leave_request_submitted",
        extra={
            "user_id": user_id,
            "leave_id": leave.id,
            "requested_days": evaluation.requested_days,
            "is_loss_of_pay": evaluation.is_loss_of_pay,
            "exempt": evaluation.exempt,
        },
    )
    return leave


def decide_leave_request(
    db: Session,
    *,
    leave_id: int,
    status: RequestStatus,
    approver_id: int,
    now: datetime | None = None,
) -> LeaveRequest:
    leave = db.scalar(select(LeaveRequest).where(LeaveRequest.id == leave_id).with_for_update())
    if leave is None:
        db.rollback()
        raise NotFoundError("LEAVE_REQUEST_NOT_FOUND", "Leave request not found.")

    try:
        apply_decision(leave, status=status, approver_id=approver_id, decided_at=normalize_utc(now))
    except ApiError:
        db.rollback()
        raise

    record_audit(
        db,
        actor_type=AuditActorType.USER,
        actor_id=str(approver_id),
        action=f"LEAVE_REQUEST_{status.value}",
        entity_type="leave_request",
        entity_id=str(leave.id),
        details={"user_id": leave.user_id, "is_loss_of_pay": leave.is_loss_of_pay},
    )
    db.commit()
    db.refresh(leave)
    logger.info(
        "leave_request_decided",
        extra={"leave_id": leave.id, "status": status.value, "approver_id": approver_id},
    )
    return leave


def list_leave_requests(
    db: Session,
    *,
    viewer_id: int,
    viewer_role: UserRole,
    status: RequestStatus | None = None,
    user_id: int | None = None,
) -> list[LeaveRequest]:
    stmt = select(LeaveRequest).order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
    stmt = scope_request_query(
        stmt,
        LeaveRequest,
        viewer_id=viewer_id,
        viewer_role=viewer_role,
        status=status,
        user_id=user_id,
    )
    return list(db.scalars(stmt).all())
