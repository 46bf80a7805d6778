from datetime import date, datetime, timezone
import unittest

from hrledger.services.company_time import (
    PayCycle,
    company_date,
    days_in_cycle,
    first_sunday_in_range,
    inclusive_day_count,
    is_sunday,
    local_day_bounds_utc,
    month_bounds,
    normalize_utc,
    overtime_threshold_utc,
    pay_cycle_for,
)


class PayCycleTests(unittest.TestCase):
    def test_day_before_anchor_belongs_to_previous_cycle(self) -> None:
        cycle = pay_cycle_for(date(2026, 2, 4))

        self.assertEqual(cycle, PayCycle(start=date(2026, 1, 5), end=date(2026, 2, 5)))

    def test_anchor_day_starts_new_cycle(self) -> None:
        cycle = pay_cycle_for(date(2026, 2, 5))

        self.assertEqual(cycle, PayCycle(start=date(2026, 2, 5), end=date(2026, 3, 5)))
        self.assertTrue(cycle.contains(date(2026, 3, 4)))
        self.assertFalse(cycle.contains(date(2026, 3, 5)))

    def test_cycle_wraps_year_boundary(self) -> None:
        cycle = pay_cycle_for(date(2026, 1, 3))

        self.assertEqual(cycle, PayCycle(start=date(2025, 12, 5), end=date(2026, 1, 5)))

    def test_days_in_cycle_clamps_to_half_open_window(self) -> None:
        cycle = PayCycle(start=date(2026, 2, 5), end=date(2026, 3, 5))

        self.assertEqual(days_in_cycle(date(2026, 2, 3), date(2026, 2, 6), cycle), 2)
        self.assertEqual(days_in_cycle(date(2026, 3, 4), date(2026, 3, 6), cycle), 1)
        self.assertEqual(days_in_cycle(date(2026, 3, 5), date(2026, 3, 6), cycle), 0)
        self.assertEqual(days_in_cycle(date(2026, 1, 1), date(2026, 1, 3), cycle), 0)


class CompanyCalendarTests(unittest.TestCase):
    def test_company_date_rolls_over_at_local_midnight(self) -> None:
        # 18:29 UTC is 23:59 IST, 18:30 UTC is 00:00 IST the next day.
        self.assertEqual(company_date(datetime(2026, 2, 4, 18, 29, tzinfo=timezone.utc)), date(2026, 2, 4))
        self.assertEqual(company_date(datetime(2026, 2, 4, 18, 30, tzinfo=timezone.utc)), date(2026, 2, 5))

    def test_naive_timestamp_is_treated_as_utc(self) -> None:
        normalized = normalize_utc(datetime(2026, 2, 4, 12, 0))

        self.assertEqual(normalized, datetime(2026, 2, 4, 12, 0, tzinfo=timezone.utc))

    def test_local_day_bounds_in_utc(self) -> None:
        start_utc, end_utc = local_day_bounds_utc(date(2026, 2, 4))

        self.assertEqual(start_utc, datetime(2026, 2, 3, 18, 30, tzinfo=timezone.utc))
        self.assertEqual(end_utc, datetime(2026, 2, 4, 18, 30, tzinfo=timezone.utc))

    def test_overtime_threshold_is_half_past_five_local(self) -> None:
        self.assertEqual(
            overtime_threshold_utc(date(2026, 2, 4)),
            datetime(2026, 2, 4, 12, 0, tzinfo=timezone.utc),
        )

    def test_sunday_helpers(self) -> None:
        self.assertTrue(is_sunday(date(2026, 2, 8)))
        self.assertFalse(is_sunday(date(2026, 2, 7)))
        self.assertIsNone(first_sunday_in_range(date(2026, 2, 2), date(2026, 2, 7)))
        self.assertEqual(first_sunday_in_range(date(2026, 2, 6), date(2026, 2, 9)), date(2026, 2, 8))
        self.assertIsNone(first_sunday_in_range(date(2026, 2, 9), date(2026, 2, 6)))

    def test_inclusive_day_count(self) -> None:
        self.assertEqual(inclusive_day_count(date(2026, 2, 4), date(2026, 2, 4)), 1)
        self.assertEqual(inclusive_day_count(date(2026, 2, 4), date(2026, 2, 6)), 3)
        self.assertEqual(inclusive_day_count(date(2026, 2, 6), date(2026, 2, 4)), 0)

    def test_month_bounds_cover_whole_calendar_month(self) -> None:
        self.assertEqual(month_bounds("2026-02"), (date(2026, 2, 1), date(2026, 2, 28)))
        self.assertEqual(month_bounds("2028-02"), (date(2028, 2, 1), date(2028, 2, 29)))
        self.assertEqual(month_bounds("2026-12"), (date(2026, 12, 1), date(2026, 12, 31)))


if __name__ == "__main__":
    unittest.main()
