from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from hrledger.models import AttendanceStatus, RequestStatus


class AttendanceSessionRead(BaseModel):
    id: int
    check_in: datetime
    check_out: datetime | None
    hours_worked: Decimal
    is_overtime: bool
    overtime_hours: Decimal

    model_config = ConfigDict(from_attributes=True)


class AttendanceDayRead(BaseModel):
    id: int
    user_id: int
    work_date: date
    status: AttendanceStatus
    total_hours: Decimal
    overtime_hours: Decimal
    is_overtime: bool
    notes: str | None

    model_config = ConfigDict(from_attributes=True)


class ClockActionResponse(BaseModel):
    message: str
    session: AttendanceSessionRead


class SessionHookResponse(BaseModel):
    message: str
    session: AttendanceSessionRead | None = None


class LiveStatusResponse(BaseModel):
    user_id: int
    work_date: date
    has_attendance: bool
    is_clocked_in: bool
    stored_total_hours: Decimal
    projected_total_hours: Decimal
    live_session_hours: Decimal
    active_session: AttendanceSessionRead | None = None
    sessions: list[AttendanceSessionRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class OvertimeProjectionResponse(BaseModel):
    user_id: int
    work_date: date
    threshold_utc: datetime
    closed_overtime_hours: Decimal
    live_overtime_hours: Decimal
    projected_overtime_hours: Decimal
    is_overtime: bool

    model_config = ConfigDict(from_attributes=True)


class MarkAttendanceRequest(BaseModel):
    status: AttendanceStatus
    work_date: date | None = None
    notes: str | None = Field(default=None, max_length=2000)


class AttendanceDayViewRead(BaseModel):
    id: int
    user_id: int
    user_name: str | None = None
    department: str | None = None
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

    model_config = ConfigDict(from_attributes=True)


class AttendanceDayDetailRead(AttendanceDayViewRead):
    sessions: list[AttendanceSessionRead] = Field(default_factory=list)


class AttendanceUpdateRequest(BaseModel):
    status: AttendanceStatus | None = None
    notes: str | None = Field(default=None, max_length=2000)


class WorkingHoursOverviewResponse(BaseModel):
    work_date: date
    employees: list[AttendanceDayViewRead]
    total_employees_present: int
    active_employees: int
    total_hours_today: Decimal
    total_overtime_today: Decimal

    model_config = ConfigDict(from_attributes=True)


class LeaveCreateRequest(BaseModel):
    start_date: date
    end_date: date
    reason: str = Field(min_length=5, max_length=1000)


class WfhCreateRequest(BaseModel):
    start_date: date
    end_date: date
    reason: str = Field(min_length=5, max_length=1000)


class RequestDecision(BaseModel):
    status: RequestStatus


class LeaveRead(BaseModel):
    id: int
    user_id: int
    start_date: date
    end_date: date
    reason: str
    status: RequestStatus
    is_loss_of_pay: bool
    decided_by_user_id: int | None
    decided_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WfhRead(BaseModel):
    id: int
    user_id: int
    start_date: date
    end_date: date
    reason: str
    status: RequestStatus
    decided_by_user_id: int | None
    decided_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DailyHoursRowRead(BaseModel):
    user_id: int
    work_date: date
    status: str
    total_hours: Decimal
    overtime_hours: Decimal
    is_overtime: bool
    session_count: int

    model_config = ConfigDict(from_attributes=True)


class LeaveReportRowRead(BaseModel):
    user_id: int
    full_name: str
    department: str | None
    leave_days: int
    lop_days: int
    lop_request_count: int
    request_ids: list[int]

    model_config = ConfigDict(from_attributes=True)


class LeaveReportResponse(BaseModel):
    start_date: date
    end_date: date
    rows: list[LeaveReportRowRead]


class LopDaysRowRead(BaseModel):
    user_id: int
    lop_days: int
