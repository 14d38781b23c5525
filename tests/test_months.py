import unittest
from datetime import datetime

from coachfee.utils.months import (
    current_month_key,
    format_month_text,
    is_month_key,
    month_options,
    normalize_month_key,
)


class NormalizeMonthKeyTests(unittest.TestCase):
    def test_canonical(self):
        self.assertEqual(normalize_month_key("2026-01"), "2026-01")

    def test_single_digit_month(self):
        self.assertEqual(normalize_month_key("2026-1"), "2026-01")
        self.assertEqual(normalize_month_key(" 2026-9 "), "2026-09")

    def test_abbreviated_name(self):
        self.assertEqual(normalize_month_key("Jan 2026"), "2026-01")
        self.assertEqual(normalize_month_key("dec 2025"), "2025-12")
        self.assertEqual(normalize_month_key("SEP  2025"), "2025-09")

    def test_full_name(self):
        self.assertEqual(normalize_month_key("January 2026"), "2026-01")
        self.assertEqual(normalize_month_key("september 2025"), "2025-09")

    def test_unparseable(self):
        for value in ("banana", "", None, "2026/01", "Foo 2026", "2026-13", "2026-0", "01-2026"):
            with self.subTest(value=value):
                self.assertIsNone(normalize_month_key(value))


class MonthHelpersTests(unittest.TestCase):
    def test_is_month_key(self):
        self.assertTrue(is_month_key("2026-12"))
        self.assertFalse(is_month_key("2026-1"))
        self.assertFalse(is_month_key("2026-00"))
        self.assertFalse(is_month_key(202601))

    def test_format_month_text(self):
        self.assertEqual(format_month_text("2026-01"), "January 2026")
        self.assertEqual(format_month_text("2025-11"), "November 2025")
        self.assertEqual(format_month_text("whenever"), "whenever")

    def test_current_month_key(self):
        self.assertEqual(current_month_key(datetime(2026, 3, 31, 23, 0)), "2026-03")

    def test_month_options_newest_first(self):
        options = month_options(datetime(2026, 1, 15))
        self.assertEqual(len(options), 14)
        self.assertEqual(options[0], {"value": "2026-02", "label": "Feb 2026"})
        self.assertEqual(options[1]["value"], "2026-01")
        self.assertEqual(options[-1], {"value": "2025-01", "label": "Jan 2025"})


if __name__ == "__main__":
    unittest.main()
