import unittest
from datetime import date

from services.date_normalizer import (
    apply_date_override,
    normalize_date,
    parse_short_date,
    preprocess_raw_text,
    previous_calendar_day,
)

TODAY = date(2025, 6, 1)


class TestShortDateParsing(unittest.TestCase):
    def test_parses_month_first(self):
        self.assertEqual(parse_short_date("5.9\nBTC ..."), (5, 9))

    def test_only_first_line_counts(self):
        self.assertIsNone(parse_short_date("BTC 1627\n5.9"))

    def test_preprocess_annotates_token(self):
        out = preprocess_raw_text("5.9\nBTC otc 1627", TODAY)
        first, rest = out.split("\n", 1)
        self.assertEqual(first, "5.9 (date: month 5 = May, day 9, year 2025 => 2025-05-09)")
        self.assertEqual(rest, "BTC otc 1627")

    def test_preprocess_annotates_out_of_range_token_without_month_name(self):
        self.assertEqual(
            preprocess_raw_text("13.40\nBTC", TODAY),
            "13.40 (date: month 13, day 40, year 2025)\nBTC",
        )

    def test_preprocess_without_token_is_identity(self):
        self.assertEqual(preprocess_raw_text("BTC otc 1627", TODAY), "BTC otc 1627")


class TestNormalizeDate(unittest.TestCase):
    def test_swapped_month_and_day_is_repaired(self):
        self.assertEqual(normalize_date("2025-10-05", "5.9\nBTC", TODAY), "2025-05-09")

    def test_matching_candidate_is_kept(self):
        self.assertEqual(normalize_date("2025-05-09", "5.9\nBTC", TODAY), "2025-05-09")

    def test_stale_year_is_corrected(self):
        self.assertEqual(normalize_date("2023-05-09", "5.9\nBTC", TODAY), "2025-05-09")

    def test_stale_year_without_token(self):
        self.assertEqual(normalize_date("2024-03-02", "BTC otc 1627", TODAY), "2025-03-02")

    def test_missing_candidate_uses_today(self):
        self.assertEqual(normalize_date(None, "5.9\nBTC", TODAY), "2025-06-01")

    def test_non_iso_candidate_falls_back_to_token(self):
        self.assertEqual(normalize_date("May 9th", "5.9\nBTC", TODAY), "2025-05-09")

    def test_non_iso_candidate_without_token_uses_today(self):
        self.assertEqual(normalize_date("yesterday", "BTC", TODAY), "2025-06-01")


class TestDateHelpers(unittest.TestCase):
    def test_override_replaces_existing_token(self):
        self.assertEqual(apply_date_override("5.9\nBTC", date(2025, 7, 4)), "7.4\nBTC")

    def test_override_prefixes_when_no_token(self):
        self.assertEqual(apply_date_override("BTC otc 1627", date(2025, 7, 4)), "7.4\nBTC otc 1627")

    def test_previous_calendar_day_crosses_month(self):
        self.assertEqual(previous_calendar_day("2025-03-01"), "2025-02-28")

    def test_previous_calendar_day_invalid(self):
        self.assertIsNone(previous_calendar_day("2025-02-30"))


if __name__ == "__main__":
    unittest.main()
