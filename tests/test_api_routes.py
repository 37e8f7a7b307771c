import unittest

from tests.support import FakeExtractor, make_session_factory

from fastapi.testclient import TestClient

from database import get_db
from main import app
from middleware.first_run import ensure_admin_account
from middleware.rate_limit import limiter
from routers.data_routes import get_extractor
from services.auth import require_admin


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.Session, self.engine = make_session_factory()
        self.extractor = FakeExtractor({
            "date": "2025-05-09",
            "coins": [
                {"symbol": "BTC", "otcIndex": 1627, "explosionIndex": 195, "entryExitType": "entry", "entryExitDay": 26},
                {"symbol": "ETH", "otcIndex": 1430, "explosionIndex": 180, "entryExitType": "exit", "entryExitDay": 105},
            ],
            "liquidity": {"btcFundChange": 0.2, "ethFundChange": -1.7},
            "trendingCoins": [{"symbol": "TRUMP", "otcIndex": 1339, "explosionIndex": 81}],
        })

        def _get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        limiter.enabled = False
        app.dependency_overrides[get_db] = _get_db
        app.dependency_overrides[require_admin] = lambda: object()
        app.dependency_overrides[ensure_admin_account] = lambda: None
        app.dependency_overrides[get_extractor] = lambda: self.extractor
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        self.engine.dispose()

    def _ingest(self, raw="5.9\nBTC 1627", day="2025-05-09"):
        return self.client.post("/api/data/input", json={"rawData": raw, "date": day})


class TestDataRoutes(ApiTestCase):
    def test_input_then_latest(self):
        res = self._ingest()
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), {
            "success": True,
            "date": "2025-05-09",
            "processed": {"coins": 2, "liquidityUpdated": True, "trendingCoins": 1},
        })

        latest = self.client.get("/api/data/latest").json()
        self.assertEqual(latest["date"], "2025-05-09")
        self.assertEqual(len(latest["metrics"]), 2)
        self.assertEqual(latest["trendingCoins"][0]["symbol"], "TRUMP")

    def test_latest_on_empty_database(self):
        self.assertEqual(self.client.get("/api/data/latest").status_code, 404)

    def test_blank_raw_data_rejected(self):
        res = self.client.post("/api/data/input", json={"rawData": "   "})
        self.assertEqual(res.status_code, 422)

    def test_invalid_structure_is_400(self):
        self.extractor.result = {"date": "2025-05-09"}
        res = self._ingest()
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["detail"]["error"], "Invalid processed data structure")

    def test_extraction_failure_is_500(self):
        from services.errors import ExtractionError

        self.extractor.error = ExtractionError("Failed to parse the processed data")
        res = self._ingest()
        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.json()["detail"]["details"], "Failed to parse the processed data")

    def test_export_and_import(self):
        self._ingest()
        dump = self.client.get("/api/data/export-all").json()
        res = self.client.post("/api/data/import-database", json=dump)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["summary"]["metricsImported"], 2)

        bad = self.client.post("/api/data/import-database", json={"coins": []})
        self.assertEqual(bad.status_code, 400)

    def test_debug_date_range(self):
        self._ingest()
        body = self.client.get("/api/data/debug/date-range").json()
        self.assertEqual(body["dates"], ["2025-05-09"])


class TestCrudRoutes(ApiTestCase):
    def test_coin_lifecycle(self):
        res = self.client.post("/api/coins", json={"symbol": "sol", "name": "Solana"})
        self.assertEqual(res.status_code, 201)
        coin_id = res.json()["id"]
        self.assertEqual(res.json()["symbol"], "SOL")

        self.assertEqual(self.client.post("/api/coins", json={"symbol": "SOL", "name": "Solana"}).status_code, 409)
        self.assertEqual(self.client.get("/api/coins/sol").json()["name"], "Solana")

        updated = self.client.put(f"/api/coins/{coin_id}", json={"current_price": 150.5})
        self.assertEqual(updated.json()["current_price"], 150.5)

        self.assertEqual(self.client.delete(f"/api/coins/{coin_id}").status_code, 200)
        self.assertEqual(self.client.get("/api/coins/SOL").status_code, 404)

    def test_metric_upsert(self):
        coin_id = self.client.post("/api/coins", json={"symbol": "BTC", "name": "Bitcoin"}).json()["id"]
        payload = {"coin_id": coin_id, "date": "2025-05-09", "otc_index": 1627}
        first = self.client.post("/api/metrics", json=payload)
        second = self.client.post("/api/metrics", json={**payload, "explosion_index": 195})

        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(first.json()["id"], second.json()["id"])
        self.assertEqual(second.json()["otc_index"], 1627)

        listed = self.client.get("/api/metrics", params={"date": "2025-05-09"}).json()
        self.assertEqual(listed[0]["coin"]["symbol"], "BTC")

        missing = self.client.post("/api/metrics", json={**payload, "coin_id": 999})
        self.assertEqual(missing.status_code, 404)

    def test_liquidity_merge(self):
        first = self.client.post("/api/liquidity", json={"date": "2025-05-09", "btc_fund_change": 0.2})
        second = self.client.post("/api/liquidity", json={"date": "2025-05-09", "eth_fund_change": -1.7})
        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(second.json()["btc_fund_change"], 0.2)
        self.assertEqual(second.json()["eth_fund_change"], -1.7)

        self.assertEqual(self.client.get("/api/liquidity/2025-05-08").status_code, 404)

    def test_favorites(self):
        body = {"deviceId": "device-1", "symbol": "btc"}
        self.assertEqual(self.client.post("/api/favorites", json=body).status_code, 201)
        self.assertEqual(self.client.post("/api/favorites", json=body).status_code, 200)
        self.assertEqual(self.client.get("/api/favorites/device-1").json(), ["BTC"])

        self.assertEqual(self.client.delete("/api/favorites/device-1/btc").status_code, 200)
        self.assertEqual(self.client.delete("/api/favorites/device-1/btc").status_code, 404)


class TestDashboardRoutes(ApiTestCase):
    def test_dashboard_for_day(self):
        self._ingest()
        body = self.client.get("/api/dashboard", params={"date": "2025-05-09"}).json()
        self.assertEqual(body["statistics"]["total_coins"], 2)
        self.assertEqual(body["statistics"]["entry_coins"], 1)
        self.assertIn("BTC", body["signals"]["entry_candidates"])

    def test_trends(self):
        self._ingest()
        res = self.client.get("/api/dashboard/trends", params={"symbol": "btc", "metric": "otc_index"})
        self.assertEqual(res.json(), [{"symbol": "BTC", "name": "BTC", "data": [{"date": "2025-05-09", "value": 1627}]}])

        self.assertEqual(self.client.get("/api/dashboard/trends", params={"metric": "price"}).status_code, 400)
        self.assertEqual(self.client.get("/api/dashboard/trends", params={"symbol": "XYZ"}).status_code, 404)


class TestAuthRoutes(ApiTestCase):
    def test_register_login_verify(self):
        res = self.client.post("/api/auth/register", json={"username": "alice", "password": "hunter22"})
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.json()["user"]["role"], "user")

        dup = self.client.post("/api/auth/register", json={"username": "alice", "password": "hunter22"})
        self.assertEqual(dup.status_code, 409)

        login = self.client.post("/api/auth/login", json={"username": "alice", "password": "hunter22"})
        self.assertEqual(login.status_code, 200)
        token = login.json()["token"]

        me = self.client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(me.json()["username"], "alice")

    def test_bad_credentials(self):
        res = self.client.post("/api/auth/login", json={"username": "nobody", "password": "whatever"})
        self.assertEqual(res.status_code, 401)

    def test_verify_requires_token(self):
        self.assertEqual(self.client.get("/api/auth/verify").status_code, 401)

    def test_short_password_rejected(self):
        res = self.client.post("/api/auth/register", json={"username": "bob", "password": "123"})
        self.assertEqual(res.status_code, 400)


class TestAdminGuard(unittest.TestCase):
    def test_ingest_requires_token(self):
        app.dependency_overrides.clear()
        limiter.enabled = False
        client = TestClient(app)
        res = client.post("/api/data/input", json={"rawData": "5.9\nBTC"})
        self.assertEqual(res.status_code, 401)


if __name__ == "__main__":
    unittest.main()
