import threading
import time
import unittest
from decimal import Decimal

from fastapi.testclient import TestClient

from batching_server.config.settings import Settings
from batching_server.main import app
from batching_server.schemas.asset import AssetSpecifier, Quotation
from batching_server.services.coin_storage import CoinInfoStorage
from batching_server.services.price_updater import PriceUpdater

DOT = AssetSpecifier(blockchain="Polkadot", symbol="DOT")


class OneAssetDispatcher:
    def __init__(self) -> None:
        self.called = threading.Event()

    def get_quotations(self, assets):
        self.called.set()
        return [
            Quotation(symbol=a.symbol, name=a.symbol, blockchain=a.blockchain, price=Decimal("5.25"), timestamp=1700000000)
            for a in assets
        ]

    def metrics(self) -> dict:
        return {"final_count": 1}


class AppLifecycleTest(unittest.TestCase):
    def setUp(self):
        self.original_get_settings = app.state.get_settings
        self.original_build = app.state.build_price_updater
        self.original_storage = app.state.coin_storage
        self.original_updater = app.state.price_updater
        self.dispatcher = OneAssetDispatcher()
        self.built: list[PriceUpdater] = []

        def build(settings, storage):
            updater = PriceUpdater(
                storage=storage,
                dispatcher=self.dispatcher,
                supported_currencies=settings.SUPPORTED_CURRENCIES,
                interval_sec=settings.UPDATE_INTERVAL_SECONDS,
            )
            self.built.append(updater)
            return updater

        app.state.get_settings = lambda: Settings(SUPPORTED_CURRENCIES=[DOT], UPDATE_INTERVAL_SECONDS=60)
        app.state.build_price_updater = build
        app.state.coin_storage = CoinInfoStorage()

    def tearDown(self):
        app.state.get_settings = self.original_get_settings
        app.state.build_price_updater = self.original_build
        app.state.coin_storage = self.original_storage
        app.state.price_updater = self.original_updater

    def test_updater_starts_on_startup_publishes_and_stops_on_shutdown(self):
        with TestClient(app) as client:
            self.assertTrue(self.dispatcher.called.wait(1.0), "updater did not run a cycle on startup")
            deadline = time.time() + 1.0
            rows, metrics = [], {}
            while (not rows or not metrics.get("runs")) and time.time() < deadline:
                rows = client.get("/v1/currencies", params={"currencies": "Polkadot:DOT"}).json()
                metrics = client.get("/v1/metrics/updater").json()
                time.sleep(0.01)

            self.assertEqual(rows[0]["price"], 5_250_000_000_000)
            self.assertEqual(metrics["snapshot_size"], 1)
            self.assertGreaterEqual(metrics["runs"], 1)
            self.assertEqual(metrics["dispatcher"], {"final_count": 1})
            self.assertTrue(self.built[0].running)

        self.assertEqual(len(self.built), 1)
        self.assertFalse(self.built[0].running)


if __name__ == "__main__":
    unittest.main()
