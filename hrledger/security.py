from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from uuid import uuid4

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from hrledger.db import get_db
from hrledger.errors import ApiError
from hrledger.models import User, UserRole
from hrledger.settings import get_settings

bearer_scheme = HTTPBearer(auto_error=False)

ATTENDANCE_OVERVIEW_ROLES = frozenset({UserRole.ADMIN, UserRole.HR, UserRole.PA, UserRole.BA})
ATTENDANCE_EDITOR_ROLES = frozenset({UserRole.ADMIN, UserRole.HR})
ATTENDANCE_DELETE_ROLES = frozenset({UserRole.ADMIN})
REPORT_ROLES = frozenset({UserRole.ADMIN, UserRole.HR})
LEAVE_APPROVER_ROLES = frozenset({UserRole.ADMIN})
WFH_APPROVER_ROLES = frozenset({UserRole.ADMIN, UserRole.HR})


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: UserRole
    full_name: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(*, user_id: int, role: UserRole, full_name: str | None = None) -> str:
    """Issue a token the way the upstream auth service does; used by tooling and tests."""
    settings = get_settings()
    now = _utcnow()
    claims = {
        "sub": str(user_id),
        "role": role.value,
        "full_name": full_name,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.access_token_minutes)).timestamp()),
        "jti": str(uuid4()),
        "typ": "access",
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm="HS256")


def decode_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"require_sub": True, "require_iat": True, "require_exp": True},
        )
    except JWTError as exc:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token is invalid.") from exc

    if payload.get("typ") != "access":
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token type is invalid.")

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.isdigit():
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token subject is invalid.")

    return payload


def require_actor(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Actor:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Missing bearer token.")

    payload = decode_token(credentials.credentials)
    user = db.get(User, int(payload["sub"]))
    if user is None:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token user no longer exists.")
    if not user.is_active:
        raise ApiError(status_code=403, code="USER_INACTIVE", message="Inactive users cannot perform this action.")

    request.state.actor = user.role.value.lower()
    request.state.actor_id = str(user.id)
    return Actor(user_id=user.id, role=user.role, full_name=user.full_name)


def require_roles(allowed: frozenset[UserRole]) -> Callable[..., Actor]:
    def _dependency(actor: Actor = Depends(require_actor)) -> Actor:
        if actor.role not in allowed:
            raise ApiError(status_code=403, code="FORBIDDEN", message="Insufficient permissions.")
        return actor

    return _dependency
