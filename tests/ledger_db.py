from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import hrledger.models  # noqa: F401
from hrledger.db import Base
from hrledger.models import User, UserRole


def make_session_factory() -> sessionmaker:
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, class_=Session)


def add_user(
    db: Session,
    *,
    full_name: str,
    role: UserRole = UserRole.EMPLOYEE,
    department: str | None = "Engineering",
    is_active: bool = True,
) -> User:
    user = User(full_name=full_name, role=role, department=department, is_active=is_active)
    db.add(user)
    db.commit()
    return user


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
