from __future__ import annotations

from datetime import date
from decimal import Decimal
import json
import logging
import unittest

from hrledger.logging_utils import JsonFormatter


class JsonFormatterTests(unittest.TestCase):
    def test_extra_fields_are_serialized(self) -> None:
        record = logging.LogRecord(
            name="hrledger.attendance",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="clock_out",
            args=(),
            exc_info=None,
        )
        record.user_id = 7
        record.work_date = date(2026, 2, 4)
        record.hours_worked = Decimal("3.25")

        payload = json.loads(JsonFormatter(service="HRLedger").format(record))

        self.assertEqual(payload["message"], "clock_out")
        self.assertEqual(payload["logger"], "hrledger.attendance")
        self.assertEqual(payload["service"], "HRLedger")
        self.assertEqual(payload["user_id"], 7)
        self.assertEqual(payload["work_date"], "2026-02-04")
        self.assertEqual(payload["hours_worked"], "3.25")
        self.assertNotIn("lineno", payload)


if __name__ == "__main__":
    unittest.main()
