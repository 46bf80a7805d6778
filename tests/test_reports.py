from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
import unittest

from hrledger.models import LeaveRequest, RequestStatus
from hrledger.services.attendance import clock_in, clock_out
from hrledger.services.reports import daily_hours_report, leave_report, lop_day_counts
from ledger_db import add_user, make_session_factory, utc

MORNING = utc(2026, 2, 4, 3, 30)


class ReportTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.asha = add_user(self.db, full_name="Asha Rao")
        self.bilal = add_user(self.db, full_name="Bilal Khan", department="Finance")
        self.inactive = add_user(self.db, full_name="Zara Sheikh", is_active=False)

    def tearDown(self) -> None:
        self.db.close()

    def _leave(self, user, start: date, end: date, *, lop: bool, status=RequestStatus.APPROVED) -> LeaveRequest:  # type: ignore[no-untyped-def]
        leave = LeaveRequest(
            user_id=user.id,
            start_date=start,
            end_date=end,
            reason="Family event",
            status=status,
            is_loss_of_pay=lop,
        )
        self.db.add(leave)
        self.db.commit()
        return leave

    def test_daily_hours_report_reads_stored_totals(self) -> None:
        clock_in(self.db, self.asha.id, MORNING)
        clock_out(self.db, self.asha.id, MORNING + timedelta(hours=2))
        clock_in(self.db, self.asha.id, MORNING + timedelta(hours=3))
        clock_out(self.db, self.asha.id, MORNING + timedelta(hours=4, minutes=30))
        clock_in(self.db, self.bilal.id, MORNING + timedelta(days=1))

        rows = daily_hours_report(self.db, start=date(2026, 2, 4), end=date(2026, 2, 5))

        self.assertEqual([(row.user_id, row.work_date) for row in rows], [
            (self.asha.id, date(2026, 2, 4)),
            (self.bilal.id, date(2026, 2, 5)),
        ])
        self.assertEqual(rows[0].total_hours, Decimal("3.50"))
        self.assertEqual(rows[0].session_count, 2)
        self.assertEqual(rows[0].status, "PRESENT")
        self.assertEqual(rows[1].total_hours, Decimal("0.00"))
        self.assertEqual(rows[1].session_count, 1)

        only_bilal = daily_hours_report(self.db, start=date(2026, 2, 4), end=date(2026, 2, 5), user_id=self.bilal.id)
        self.assertEqual([row.user_id for row in only_bilal], [self.bilal.id])

    def test_lop_days_are_clamped_to_period(self) -> None:
        self._leave(self.asha, date(2026, 2, 2), date(2026, 2, 6), lop=True)
        self._leave(self.asha, date(2026, 2, 10), date(2026, 2, 10), lop=False)
        self._leave(self.bilal, date(2026, 2, 9), date(2026, 2, 11), lop=True, status=RequestStatus.PENDING)

        counts = lop_day_counts(self.db, start=date(2026, 2, 5), end=date(2026, 2, 28))

        self.assertEqual(counts, {self.asha.id: 2})

    def test_leave_report_lists_active_users(self) -> None:
        lop = self._leave(self.asha, date(2026, 2, 2), date(2026, 2, 6), lop=True)
        free = self._leave(self.asha, date(2026, 2, 10), date(2026, 2, 10), lop=False)
        self._leave(self.inactive, date(2026, 2, 10), date(2026, 2, 10), lop=True)

        rows = leave_report(self.db, start=date(2026, 2, 5), end=date(2026, 2, 28))

        self.assertEqual([row.full_name for row in rows], ["Asha Rao", "Bilal Khan"])
        asha_row = rows[0]
        self.assertEqual(asha_row.leave_days, 3)
        self.assertEqual(asha_row.lop_days, 2)
        self.assertEqual(asha_row.lop_request_count, 1)
        self.assertEqual(asha_row.request_ids, [lop.id, free.id])
        self.assertEqual(rows[1].leave_days, 0)


if __name__ == "__main__":
    unittest.main()
