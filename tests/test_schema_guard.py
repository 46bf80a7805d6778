from __future__ import annotations

import unittest
from unittest.mock import patch

from hrledger.services.schema_guard import verify_runtime_schema


class _FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar(self):  # type: ignore[no-untyped-def]
        return self._value


class _FakeConnection:
    def __init__(self, version_value):
        self._version_value = version_value

    def __enter__(self):  # type: ignore[no-untyped-def]
        return self

    def __exit__(self, exc_type, exc, tb):  # type: ignore[no-untyped-def]
        return False

    def execute(self, _statement):  # type: ignore[no-untyped-def]
        return _FakeResult(self._version_value)


class _FakeEngine:
    def __init__(self, version_value):
        self._version_value = version_value

    def connect(self):  # type: ignore[no-untyped-def]
        return _FakeConnection(self._version_value)


class _FakeInspector:
    def __init__(
        self,
        *,
        columns_by_table: dict[str, set[str]],
        indexes_by_table: dict[str, set[str]],
        enums: list[dict[str, object]],
    ):
        self._columns_by_table = columns_by_table
        self._indexes_by_table = indexes_by_table
        self._enums = enums

    def get_columns(self, table_name: str):  # type: ignore[no-untyped-def]
        columns = self._columns_by_table[table_name]
        return [{"name": item} for item in columns]

    def get_indexes(self, table_name: str):  # type: ignore[no-untyped-def]
        return [{"name": item} for item in self._indexes_by_table.get(table_name, set())]

    def get_enums(self):  # type: ignore[no-untyped-def]
        return self._enums


FULL_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "full_name", "role", "department", "is_active"},
    "attendance_days": {"id", "user_id", "work_date", "status", "total_hours", "overtime_hours", "is_overtime"},
    "attendance_sessions": {
        "id",
        "attendance_day_id",
        "check_in",
        "check_out",
        "hours_worked",
        "is_overtime",
        "overtime_hours",
    },
    "leave_requests": {"id", "user_id", "start_date", "end_date", "status", "is_loss_of_pay"},
    "wfh_requests": {"id", "user_id", "start_date", "end_date", "status"},
    "alembic_version": {"version_num"},
}


class SchemaGuardTests(unittest.TestCase):
    def test_verify_runtime_schema_ok_when_required_columns_exist(self) -> None:
        fake_inspector = _FakeInspector(
            columns_by_table=FULL_COLUMNS,
            indexes_by_table={"attendance_sessions": {"uq_attendance_sessions_open_per_day"}},
            enums=[
                {"name": "attendance_status", "labels": ["PRESENT", "ABSENT", "LEAVE", "WFH"]},
                {"name": "request_status", "labels": ["PENDING", "APPROVED", "REJECTED"]},
            ],
        )
        fake_engine = _FakeEngine("0001_initial")

        with patch("hrledger.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertTrue(result.ok)
        self.assertEqual(result.issues, [])
        self.assertEqual(result.warnings, [])

    def test_verify_runtime_schema_reports_missing_columns(self) -> None:
        columns = dict(FULL_COLUMNS)
        columns["attendance_days"] = {"id", "user_id", "work_date"}
        columns["leave_requests"] = {"id", "user_id", "start_date", "end_date", "status"}
        fake_inspector = _FakeInspector(
            columns_by_table=columns,
            indexes_by_table={},
            enums=[
                {"name": "attendance_status", "labels": ["PRESENT", "ABSENT", "LEAVE"]},
            ],
        )
        fake_engine = _FakeEngine("")

        with patch("hrledger.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertIn("MISSING_COLUMNS:attendance_days:is_overtime,overtime_hours,total_hours", result.issues)
        self.assertIn("MISSING_COLUMNS:leave_requests:is_loss_of_pay", result.issues)
        self.assertIn("MISSING_INDEX:attendance_sessions:uq_attendance_sessions_open_per_day", result.issues)
        self.assertIn("MISSING_ENUM_VALUES:attendance_status:WFH", result.issues)
        self.assertIn("ENUM_NOT_FOUND:request_status", result.warnings)
        self.assertIn("ALEMBIC_VERSION_EMPTY", result.issues)


if __name__ == "__main__":
    unittest.main()
