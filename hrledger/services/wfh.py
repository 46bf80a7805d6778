from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrledger.audit import record_audit
from hrledger.errors import ApiError, NotFoundError
from hrledger.models import AuditActorType, RequestStatus, UserRole, WfhRequest
from hrledger.services.company_time import normalize_utc
from hrledger.services.leave_accrual import validate_submission_dates
from hrledger.services.requests import apply_decision, lock_requesting_user, scope_request_query

logger = logging.getLogger("hrledger.wfh")


def submit_wfh_request(
    db: Session,
    *,
    user_id: int,
    start_date: date,
    end_date: date,
    reason: str,
    now: datetime | None = None,
) -> WfhRequest:
    submitted_at = normalize_utc(now)
    validate_submission_dates(start_date, end_date, submitted_at)

    if lock_requesting_user(db, user_id) is None:
        db.rollback()
        raise NotFoundError("USER_NOT_FOUND", "User not found.")

    wfh_request = WfhRequest(
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        reason=reason,
        status=RequestStatus.PENDING,
        created_at=submitted_at,
    )
    db.add(wfh_request)
    db.flush()
    record_audit(
        db,
        actor_type=AuditActorType.USER,
        actor_id=str(user_id),
        action="WFH_REQUEST_SUBMITTED",
        entity_type="wfh_request",
        entity_id=str(wfh_request.id),
        details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
    )
    db.commit()
    db.refresh(wfh_request)
    logger.info("wfh_request_submitted", extra={"user_id": user_id, "wfh_request_id": wfh_request.id})
    return wfh_request


def decide_wfh_request(
    db: Session,
    *,
    request_id: int,
    status: RequestStatus,
    approver_id: int,
    now: datetime | None = None,
) -> WfhRequest:
    wfh_request = db.scalar(select(WfhRequest).where(WfhRequest.id == request_id).with_for_update())
    if wfh_request is None:
        db.rollback()
        raise NotFoundError("WFH_REQUEST_NOT_FOUND", "WFH request not found.")

    try:
        apply_decision(wfh_request, status=status, approver_id=approver_id, decided_at=normalize_utc(now))
    except ApiError:
        db.rollback()
        raise

    record_audit(
        db,
        actor_type=AuditActorType.USER,
        actor_id=str(approver_id),
        action=f"WFH_REQUEST_{status.value}",
        entity_type="wfh_request",
        entity_id=str(wfh_request.id),
        details={"user_id": wfh_request.user_id},
    )
    db.commit()
    db.refresh(wfh_request)
    logger.info(
        "wfh_request_decided",
        extra={"wfh_request_id": wfh_request.id, "status": status.value, "approver_id": approver_id},
    )
    return wfh_request


def list_wfh_requests(
    db: Session,
    *,
    viewer_id: int,
    viewer_role: UserRole,
    status: RequestStatus | None = None,
    user_id: int | None = None,
) -> list[WfhRequest]:
    stmt = select(WfhRequest).order_by(WfhRequest.created_at.desc(), WfhRequest.id.desc())
    stmt = scope_request_query(
        stmt,
        WfhRequest,
        viewer_id=viewer_id,
        viewer_role=viewer_role,
        status=status,
        user_id=user_id,
    )
    return list(db.scalars(stmt).all())


def delete_wfh_request(
    db: Session,
    *,
    request_id: int,
    actor_id: int,
    actor_role: UserRole,
) -> None:
    wfh_request = db.scalar(select(WfhRequest).where(WfhRequest.id == request_id).with_for_update())
    if wfh_request is None:
        db.rollback()
        raise NotFoundError("WFH_REQUEST_NOT_FOUND", "WFH request not found.")

    if wfh_request.user_id != actor_id and actor_role != UserRole.ADMIN:
        db.rollback()
        raise ApiError(status_code=403, code="FORBIDDEN", message="Only the requester or an admin can delete this request.")

    details = {
        "user_id": wfh_request.user_id,
        "status": wfh_request.status.value,
        "start_date": wfh_request.start_date.isoformat(),
        "end_date": wfh_request.end_date.isoformat(),
    }
    db.delete(wfh_request)
    record_audit(
        db,
        actor_type=AuditActorType.USER,
        actor_id=str(actor_id),
        action="WFH_REQUEST_DELETED",
        entity_type="wfh_request",
        entity_id=str(request_id),
        details=details,
    )
    db.commit()
    logger.info("wfh_request_deleted", extra={"wfh_request_id": request_id, "actor_id": actor_id})
