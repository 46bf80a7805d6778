from __future__ import annotations

from datetime import date
import unittest

from hrledger.errors import ValidationError
from hrledger.models import LeaveRequest, RequestStatus, UserRole
from hrledger.services.company_time import PayCycle
from hrledger.services.leave_accrual import (
    INVALID_DATE_RANGE,
    RANGE_CONTAINS_SUNDAY,
    SUBMISSION_ON_SUNDAY,
    approved_days_in_cycle,
    evaluate_leave_request,
    validate_submission_dates,
)
from ledger_db import add_user, make_session_factory, utc

# Wednesday 2026-02-04, 11:30 IST; the reference cycle is 2026-01-05 .. 2026-02-05.
SUBMITTED_AT = utc(2026, 2, 4, 6, 0)


class LeaveAccrualTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.user = add_user(self.db, full_name="Asha Rao")

    def tearDown(self) -> None:
        self.db.close()

    def _seed_leave(self, start: date, end: date, status: RequestStatus = RequestStatus.APPROVED) -> None:
        self.db.add(
            LeaveRequest(
                user_id=self.user.id,
                start_date=start,
                end_date=end,
                reason="Family event",
                status=status,
            )
        )
        self.db.commit()

    def _evaluate(self, start: date, end: date, role: UserRole = UserRole.EMPLOYEE):  # type: ignore[no-untyped-def]
        return evaluate_leave_request(
            self.db,
            user_id=self.user.id,
            role=role,
            start_date=start,
            end_date=end,
            submission_time=SUBMITTED_AT,
        )

    def test_single_day_within_free_allowance(self) -> None:
        evaluation = self._evaluate(date(2026, 2, 6), date(2026, 2, 6))

        self.assertFalse(evaluation.is_loss_of_pay)
        self.assertEqual(evaluation.requested_days, 1)
        self.assertEqual(evaluation.remaining_free_days, 1)
        self.assertEqual(evaluation.cycle, PayCycle(start=date(2026, 1, 5), end=date(2026, 2, 5)))

    def test_two_day_request_is_loss_of_pay_for_whole_request(self) -> None:
        evaluation = self._evaluate(date(2026, 2, 5), date(2026, 2, 6))

        self.assertTrue(evaluation.is_loss_of_pay)
        self.assertEqual(evaluation.requested_days, 2)

    def test_approved_day_in_cycle_exhausts_allowance(self) -> None:
        self._seed_leave(date(2026, 1, 20), date(2026, 1, 20))

        evaluation = self._evaluate(date(2026, 2, 6), date(2026, 2, 6))

        self.assertTrue(evaluation.is_loss_of_pay)
        self.assertEqual(evaluation.approved_days_used_in_cycle, 1)
        self.assertEqual(evaluation.remaining_free_days, 0)

    def test_leave_from_previous_cycle_is_ignored(self) -> None:
        self._seed_leave(date(2026, 1, 2), date(2026, 1, 3))

        evaluation = self._evaluate(date(2026, 2, 6), date(2026, 2, 6))

        self.assertFalse(evaluation.is_loss_of_pay)
        self.assertEqual(evaluation.approved_days_used_in_cycle, 0)

    def test_pending_and_rejected_leaves_do_not_count(self) -> None:
        self._seed_leave(date(2026, 1, 20), date(2026, 1, 20), RequestStatus.PENDING)
        self._seed_leave(date(2026, 1, 21), date(2026, 1, 21), RequestStatus.REJECTED)

        evaluation = self._evaluate(date(2026, 2, 6), date(2026, 2, 6))

        self.assertFalse(evaluation.is_loss_of_pay)

    def test_leave_straddling_cycle_end_counts_only_days_inside(self) -> None:
        self._seed_leave(date(2026, 2, 4), date(2026, 2, 6))

        used = approved_days_in_cycle(
            self.db,
            user_id=self.user.id,
            cycle=PayCycle(start=date(2026, 1, 5), end=date(2026, 2, 5)),
        )

        self.assertEqual(used, 1)

    def test_admin_is_exempt(self) -> None:
        self._seed_leave(date(2026, 1, 20), date(2026, 1, 22))

        evaluation = self._evaluate(date(2026, 2, 9), date(2026, 2, 11), role=UserRole.ADMIN)

        self.assertFalse(evaluation.is_loss_of_pay)
        self.assertTrue(evaluation.exempt)

    def test_reversed_range_is_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self._evaluate(date(2026, 2, 6), date(2026, 2, 5))

        self.assertEqual(ctx.exception.reason, INVALID_DATE_RANGE)


class SubmissionDateTests(unittest.TestCase):
    def test_weekday_submission_for_weekday_range_passes(self) -> None:
        validate_submission_dates(date(2026, 2, 5), date(2026, 2, 7), SUBMITTED_AT)

    def test_reversed_range(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_submission_dates(date(2026, 2, 6), date(2026, 2, 5), SUBMITTED_AT)

        self.assertEqual(ctx.exception.reason, INVALID_DATE_RANGE)
        self.assertEqual(ctx.exception.status_code, 422)

    def test_submission_on_company_sunday(self) -> None:
        # Saturday 19:00 UTC is already Sunday 00:30 IST.
        with self.assertRaises(ValidationError) as ctx:
            validate_submission_dates(date(2026, 2, 9), date(2026, 2, 9), utc(2026, 2, 7, 19, 0))

        self.assertEqual(ctx.exception.reason, SUBMISSION_ON_SUNDAY)

    def test_range_containing_sunday(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            validate_submission_dates(date(2026, 2, 6), date(2026, 2, 9), SUBMITTED_AT)

        self.assertEqual(ctx.exception.reason, RANGE_CONTAINS_SUNDAY)
        self.assertIn("2026-02-08", ctx.exception.message)


if __name__ == "__main__":
    unittest.main()
