import math
import unittest

from tests.support import make_session_factory

from services.comparison_service import build_latest_snapshot, describe_change, percent_change
from services.errors import NotFoundError
from services.ingestion_service import store_batch, validate_batch


class TestPercentChange(unittest.TestCase):
    def test_regular_change(self):
        self.assertEqual(percent_change(150, 100), 50.0)
        self.assertEqual(percent_change(50, 100), -50.0)

    def test_from_zero_is_infinite(self):
        self.assertEqual(percent_change(10, 0), math.inf)
        self.assertEqual(percent_change(-10, 0), -math.inf)

    def test_undefined_cases(self):
        self.assertIsNone(percent_change(0, 0))
        self.assertIsNone(percent_change(None, 100))
        self.assertIsNone(percent_change(100, None))

    def test_describe_change_is_json_safe(self):
        self.assertEqual(describe_change(150, 100), {"percent": 50.0, "unbounded": False, "direction": "up"})
        self.assertEqual(describe_change(10, 0), {"percent": None, "unbounded": True, "direction": "up"})
        self.assertEqual(describe_change(100, 100)["direction"], "flat")


class TestLatestSnapshot(unittest.TestCase):
    def setUp(self):
        self.Session, self.engine = make_session_factory()
        self.db = self.Session()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def _store(self, day, coins, **extra):
        store_batch(self.db, validate_batch({"date": day, "coins": coins, **extra}))

    def test_empty_database(self):
        with self.assertRaises(NotFoundError):
            build_latest_snapshot(self.db)

    def test_compares_with_previous_calendar_day(self):
        self._store("2025-05-08", [
            {"symbol": "BTC", "otcIndex": 100, "explosionIndex": 0},
        ])
        self._store("2025-05-09", [
            {"symbol": "BTC", "otcIndex": 150, "explosionIndex": 10},
            {"symbol": "ETH", "otcIndex": 1430, "explosionIndex": 180},
        ], liquidity={"btcFundChange": 0.2})

        snapshot = build_latest_snapshot(self.db)
        self.assertEqual(snapshot["date"], "2025-05-09")
        self.assertEqual(snapshot["liquidity"]["btc_fund_change"], 0.2)

        by_symbol = {m["coin"]["symbol"]: m for m in snapshot["metrics"]}
        btc = by_symbol["BTC"]
        self.assertEqual(btc["previous_day_data"], {"otc_index": 100, "explosion_index": 0})
        self.assertEqual(btc["changes"]["otc_index"]["percent"], 50.0)
        self.assertTrue(btc["changes"]["explosion_index"]["unbounded"])
        self.assertIsNone(by_symbol["ETH"]["previous_day_data"])

    def test_gap_day_has_no_previous_data(self):
        self._store("2025-05-07", [{"symbol": "BTC", "otcIndex": 100}])
        self._store("2025-05-09", [{"symbol": "BTC", "otcIndex": 150}])

        snapshot = build_latest_snapshot(self.db)
        self.assertIsNone(snapshot["metrics"][0]["previous_day_data"])
        self.assertIsNone(snapshot["metrics"][0]["changes"])


if __name__ == "__main__":
    unittest.main()
