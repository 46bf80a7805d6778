from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hrledger.db import get_db
from hrledger.models import RequestStatus
from hrledger.schemas import LeaveCreateRequest, LeaveRead, RequestDecision, WfhCreateRequest, WfhRead
from hrledger.security import LEAVE_APPROVER_ROLES, WFH_APPROVER_ROLES, Actor, require_actor, require_roles
from hrledger.services.company_time import utcnow
from hrledger.services.leaves import decide_leave_request, list_leave_requests, submit_leave_request
from hrledger.services.wfh import decide_wfh_request, delete_wfh_request, list_wfh_requests, submit_wfh_request

router = APIRouter(tags=["leaves"])


@router.post("/api/leaves", response_model=LeaveRead, status_code=status.HTTP_201_CREATED)
def create_leave_endpoint(
    payload: LeaveCreateRequest,
    request: Request,
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> LeaveRead:
    leave = submit_leave_request(
        db,
        user_id=actor.user_id,
        role=actor.role,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
        now=utcnow(),
    )
    request.state.leave_id = leave.id
    return LeaveRead.model_validate(leave)


@router.get("/api/leaves", response_model=list[LeaveRead])
def list_leaves_endpoint(
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    user_id: int | None = Query(default=None, ge=1),
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> list[LeaveRead]:
    leaves = list_leave_requests(
        db,
        viewer_id=actor.user_id,
        viewer_role=actor.role,
        status=status_filter,
        user_id=user_id,
    )
    return [LeaveRead.model_validate(item) for item in leaves]


@router.patch("/api/leaves/{leave_id}", response_model=LeaveRead)
def decide_leave_endpoint(
    leave_id: int,
    payload: RequestDecision,
    actor: Actor = Depends(require_roles(LEAVE_APPROVER_ROLES)),
    db: Session = Depends(get_db),
) -> LeaveRead:
    leave = decide_leave_request(
        db,
        leave_id=leave_id,
        status=payload.status,
        approver_id=actor.user_id,
        now=utcnow(),
    )
    return LeaveRead.model_validate(leave)


@router.post("/api/wfh", response_model=WfhRead, status_code=status.HTTP_201_CREATED)
def create_wfh_endpoint(
    payload: WfhCreateRequest,
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> WfhRead:
    wfh_request = submit_wfh_request(
        db,
        user_id=actor.user_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
        now=utcnow(),
    )
    return WfhRead.model_validate(wfh_request)


@router.get("/api/wfh", response_model=list[WfhRead])
def list_wfh_endpoint(
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    user_id: int | None = Query(default=None, ge=1),
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> list[WfhRead]:
    requests = list_wfh_requests(
        db,
        viewer_id=actor.user_id,
        viewer_role=actor.role,
        status=status_filter,
        user_id=user_id,
    )
    return [WfhRead.model_validate(item) for item in requests]


@router.patch("/api/wfh/{request_id}", response_model=WfhRead)
def decide_wfh_endpoint(
    request_id: int,
    payload: RequestDecision,
    actor: Actor = Depends(require_roles(WFH_APPROVER_ROLES)),
    db: Session = Depends(get_db),
) -> WfhRead:
    wfh_request = decide_wfh_request(
        db,
        request_id=request_id,
        status=payload.status,
        approver_id=actor.user_id,
        now=utcnow(),
    )
    return WfhRead.model_validate(wfh_request)


@router.delete("/api/wfh/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_wfh_endpoint(
    request_id: int,
    actor: Actor = Depends(require_actor),
    db: Session = Depends(get_db),
) -> None:
    delete_wfh_request(db, request_id=request_id, actor_id=actor.user_id, actor_role=actor.role)
