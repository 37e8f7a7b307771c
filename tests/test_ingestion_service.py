import os
import tempfile
import unittest
from unittest import mock

from sqlalchemy.orm import sessionmaker

from tests.support import make_session_factory
from database import Base, _build_engine

from models.coin import Coin
from models.daily_metric import DailyMetric
from models.liquidity_overview import LiquidityOverview
from models.trending_coin import TrendingCoin
from services import ingestion_service
from services.errors import ValidationError
from services.ingestion_service import ItemFailure, store_batch, validate_batch


def _batch(**overrides):
    payload = {
        "date": "2025-05-09",
        "coins": [
            {"symbol": "btc", "otcIndex": 1627, "explosionIndex": 195, "schellingPoint": 98500,
             "entryExitType": "entry", "entryExitDay": 26},
            {"symbol": "ETH", "otcIndex": 1430, "explosionIndex": 180, "entryExitType": "exit",
             "entryExitDay": 105, "nearThreshold": "true"},
        ],
    }
    payload.update(overrides)
    return payload


class TestValidateBatch(unittest.TestCase):
    def test_missing_date_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_batch({"coins": []})
        self.assertEqual(ctx.exception.message, "Invalid processed data structure")
        self.assertEqual(ctx.exception.details, "Data must include date and coins array")

    def test_coins_must_be_a_list(self):
        with self.assertRaises(ValidationError):
            validate_batch({"date": "2025-05-09", "coins": {"symbol": "BTC"}})

    def test_not_a_dict(self):
        with self.assertRaises(ValidationError):
            validate_batch(["2025-05-09"])

    def test_aliases_are_read(self):
        batch = validate_batch(_batch(trendingCoins=[{"symbol": "TRUMP"}], dailyReminder="hold"))
        self.assertEqual(batch.trending_coins, [{"symbol": "TRUMP"}])
        self.assertEqual(batch.daily_reminder, "hold")


class TestStoreBatch(unittest.TestCase):
    def setUp(self):
        self.Session, self.engine = make_session_factory()
        self.db = self.Session()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_creates_coins_and_metrics(self):
        result = store_batch(self.db, validate_batch(_batch()))

        self.assertEqual([c["symbol"] for c in result.coins], ["BTC", "ETH"])
        self.assertTrue(all(c["created"] for c in result.coins))
        self.assertEqual(self.db.query(Coin).count(), 2)

        eth = self.db.query(DailyMetric).join(Coin).filter(Coin.symbol == "ETH").one()
        self.assertEqual(eth.entry_exit_type, "exit")
        self.assertTrue(eth.near_threshold)

    def test_resubmission_updates_in_place(self):
        store_batch(self.db, validate_batch(_batch()))
        second = _batch()
        second["coins"][0]["otcIndex"] = 1700
        result = store_batch(self.db, validate_batch(second))

        self.assertFalse(any(c["created"] for c in result.coins))
        self.assertEqual(self.db.query(DailyMetric).count(), 2)
        btc = self.db.query(DailyMetric).join(Coin).filter(Coin.symbol == "BTC").one()
        self.assertEqual(btc.otc_index, 1700)

    def test_bad_coin_is_skipped_not_fatal(self):
        payload = _batch()
        payload["coins"].insert(1, {"symbol": "", "otcIndex": 5})
        payload["coins"].append({"symbol": "SOL", "entryExitType": "sideways"})
        result = store_batch(self.db, validate_batch(payload))

        self.assertEqual([c["symbol"] for c in result.coins], ["BTC", "ETH"])
        self.assertEqual(len(result.failures), 2)
        self.assertIsInstance(result.failures[0], ItemFailure)
        self.assertEqual(self.db.query(DailyMetric).count(), 2)
        self.assertIsNone(self.db.query(Coin).filter(Coin.symbol == "SOL").first())

    def test_liquidity_is_overwritten(self):
        store_batch(self.db, validate_batch(_batch(liquidity={"btcFundChange": 0.2, "comments": "calm"})))
        result = store_batch(self.db, validate_batch(_batch(liquidity={"ethFundChange": -1.7})))

        self.assertTrue(result.liquidity_updated)
        overview = self.db.query(LiquidityOverview).one()
        self.assertEqual(overview.eth_fund_change, -1.7)
        self.assertIsNone(overview.btc_fund_change)
        self.assertIsNone(overview.comments)

    def test_trending_coins_upsert_by_date_and_symbol(self):
        trending = [{"symbol": "trump", "otcIndex": 1339, "explosionIndex": 81, "entryExitType": "entry"}]
        store_batch(self.db, validate_batch(_batch(trendingCoins=trending)))
        trending[0]["explosionIndex"] = 90
        result = store_batch(self.db, validate_batch(_batch(trendingCoins=trending)))

        self.assertEqual(result.trending_coins, [{"symbol": "TRUMP", "created": False}])
        row = self.db.query(TrendingCoin).one()
        self.assertEqual(row.explosion_index, 90)

    def test_summary_counts(self):
        result = store_batch(
            self.db,
            validate_batch(_batch(liquidity={"btcFundChange": 1}, trendingCoins=[{"symbol": "PEPE"}])),
        )
        self.assertEqual(result.summary(), {"coins": 2, "liquidity_updated": True, "trending_coins": 1})


class TestConcurrentInsert(unittest.TestCase):
    """Two writers on a file database, so each session has its own connection."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.engine = _build_engine(f"sqlite:///{os.path.join(self.tmp.name, 'race.db')}")
        Base.metadata.create_all(bind=self.engine)
        self.Session = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self.db = self.Session()
        self.db.add(Coin(symbol="BTC", name="Bitcoin", current_price=0))
        self.db.commit()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()
        self.tmp.cleanup()

    def test_insert_collision_is_retried_as_update(self):
        real_upsert = ingestion_service.upsert_daily_metric
        raced = []

        def upsert_after_other_writer(db, coin_id, day, fields):
            if not raced:
                raced.append(day)
                # lookup finds nothing, then another writer commits the same key
                self.assertIsNone(
                    db.query(DailyMetric).filter(DailyMetric.coin_id == coin_id, DailyMetric.date == day).first()
                )
                other = self.Session()
                other.add(DailyMetric(coin_id=coin_id, date=day, otc_index=1500, explosion_index=150))
                other.commit()
                other.close()
                db.add(DailyMetric(coin_id=coin_id, date=day, **fields))
                db.flush()
            return real_upsert(db, coin_id, day, fields)

        payload = _batch()
        payload["coins"] = payload["coins"][:1]
        with mock.patch.object(ingestion_service, "upsert_daily_metric", side_effect=upsert_after_other_writer):
            result = store_batch(self.db, validate_batch(payload))

        self.assertEqual(raced, ["2025-05-09"])
        self.assertEqual([(c["symbol"], c["created"]) for c in result.coins], [("BTC", False)])
        self.assertEqual(result.failures, [])

        check = self.Session()
        try:
            rows = check.query(DailyMetric).all()
            self.assertEqual(len(rows), 1)
            self.assertEqual(rows[0].otc_index, 1627)
            self.assertEqual(rows[0].explosion_index, 195)
        finally:
            check.close()


if __name__ == "__main__":
    unittest.main()
