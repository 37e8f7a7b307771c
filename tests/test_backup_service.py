import unittest

from tests.support import make_session_factory

from models.coin import Coin
from models.daily_metric import DailyMetric
from models.liquidity_overview import LiquidityOverview
from models.trending_coin import TrendingCoin
from services.backup_service import date_range, db_status, export_all, import_database
from services.errors import ValidationError
from services.ingestion_service import store_batch, validate_batch


def _seed(db):
    for day, otc in (("2025-05-08", 100), ("2025-05-09", 150)):
        store_batch(db, validate_batch({
            "date": day,
            "coins": [{"symbol": "BTC", "otcIndex": otc, "explosionIndex": 195, "entryExitType": "entry"}],
            "liquidity": {"btcFundChange": 0.2, "comments": "steady"},
            "trendingCoins": [{"symbol": "TRUMP", "otcIndex": 1339}],
        }))


class TestExport(unittest.TestCase):
    def setUp(self):
        self.Session, self.engine = make_session_factory()
        self.db = self.Session()
        _seed(self.db)

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_export_shape(self):
        dump = export_all(self.db)
        self.assertEqual(dump["metadata"]["dataLatest"], "2025-05-09")
        self.assertEqual(dump["metadata"]["availableDates"], ["2025-05-09", "2025-05-08"])
        self.assertEqual(len(dump["metrics"]), 2)
        self.assertEqual(dump["metrics"][0]["coin"]["symbol"], "BTC")
        self.assertEqual(dump["latestData"]["coins"][0]["otcIndex"], 150)
        self.assertEqual(len(dump["historicalData"]["BTC"]), 2)

    def test_inspection_helpers(self):
        info = date_range(self.db)
        self.assertEqual(info["oldestDate"], "2025-05-08")
        self.assertEqual(info["newestDate"], "2025-05-09")
        self.assertEqual(info["distinctDatesCount"], 2)
        self.assertEqual(db_status(self.db)["metricsCount"], 2)


class TestImport(unittest.TestCase):
    def setUp(self):
        self.Session, self.engine = make_session_factory()

    def tearDown(self):
        self.engine.dispose()

    def test_round_trip_into_empty_database(self):
        source = self.Session()
        _seed(source)
        dump = export_all(source)
        source.close()

        target_factory, target_engine = make_session_factory()
        target = target_factory()
        try:
            summary = import_database(target, dump)
            self.assertEqual(summary, {
                "coinsImported": 1, "metricsImported": 2, "liquidityImported": 2, "trendingImported": 2,
            })
            self.assertEqual(target.query(DailyMetric).count(), 2)
            self.assertEqual(target.query(LiquidityOverview).count(), 2)
            self.assertEqual(target.query(TrendingCoin).count(), 2)
        finally:
            target.close()
            target_engine.dispose()

    def test_reimport_is_idempotent(self):
        db = self.Session()
        _seed(db)
        dump = export_all(db)
        import_database(db, dump)
        self.assertEqual(db.query(Coin).count(), 1)
        self.assertEqual(db.query(DailyMetric).count(), 2)
        db.close()

    def test_metric_for_unknown_coin_is_skipped(self):
        db = self.Session()
        dump = {
            "metadata": {"exportDate": "2025-05-09T00:00:00Z"},
            "coins": [{"symbol": "BTC", "name": "Bitcoin"}, "garbage"],
            "metrics": [
                {"coin": {"symbol": "BTC"}, "date": "2025-05-09", "otc_index": 1627},
                {"coin": {"symbol": "DOGE"}, "date": "2025-05-09", "otc_index": 1},
            ],
        }
        summary = import_database(db, dump)
        self.assertEqual(summary["coinsImported"], 1)
        self.assertEqual(summary["metricsImported"], 1)
        self.assertEqual(db.query(Coin).one().name, "Bitcoin")
        db.close()

    def test_missing_sections_rejected(self):
        db = self.Session()
        with self.assertRaises(ValidationError):
            import_database(db, {"coins": []})
        db.close()


if __name__ == "__main__":
    unittest.main()
