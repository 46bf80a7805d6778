from __future__ import annotations

from datetime import datetime

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from hrledger.errors import ConflictError, ValidationError
from hrledger.models import LeaveRequest, RequestStatus, User, UserRole, WfhRequest

SELF_SERVICE_ROLES = frozenset(
    {
        UserRole.EMPLOYEE,
        UserRole.INTERN,
        UserRole.TEAM_COORDINATOR,
        UserRole.PA,
    }
)
DECISION_STATUSES = frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED})


def lock_requesting_user(db: Session, user_id: int) -> User | None:
    # Serializes submissions per user so accrual reads see every committed approval.
    return db.scalar(select(User).where(User.id == user_id).with_for_update())


def apply_decision(
    request: LeaveRequest | WfhRequest,
    *,
    status: RequestStatus,
    approver_id: int,
    decided_at: datetime,
) -> None:
    if status not in DECISION_STATUSES:
        raise ValidationError("INVALID_STATUS", "Decision status must be APPROVED or REJECTED.")
    if request.status != RequestStatus.PENDING:
        raise ConflictError(
            "REQUEST_ALREADY_DECIDED",
            f"Request was already {request.status.value.lower()}.",
        )
    request.status = status
    request.decided_by_user_id = approver_id
    request.decided_at = decided_at


def scope_request_query(
    stmt: Select,
    model: type[LeaveRequest] | type[WfhRequest],
    *,
    viewer_id: int,
    viewer_role: UserRole,
    status: RequestStatus | None,
    user_id: int | None,
) -> Select:
    if viewer_role in SELF_SERVICE_ROLES:
        return stmt.where(model.user_id == viewer_id)
    if user_id is not None:
        stmt = stmt.where(model.user_id == user_id)
    if status is not None:
        stmt = stmt.where(model.status == status)
    return stmt
