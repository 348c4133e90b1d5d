import time
import unittest
from decimal import Decimal
from types import SimpleNamespace

from batching_server.errors import ProviderTransportError
from batching_server.schemas.asset import AssetSpecifier, Quotation
from batching_server.services.custom_sources import CrossRateFeed, CustomPriceSource
from batching_server.services.dispatcher import PriceDispatcher, build_dispatcher
from batching_server.services.fiat_source import FiatConversionSource
from batching_server.services.market_source import GenericMarketSource


class StubSource:
    def __init__(self, name: str, supported: set[tuple[str, str]], price: str = "1", error: Exception | None = None) -> None:
        self.name = name
        self.supported = supported
        self.price = Decimal(price)
        self.error = error
        self.calls: list[list[AssetSpecifier]] = []

    def supports(self, asset: AssetSpecifier) -> bool:
        return asset.key in self.supported

    def get_quotations(self, assets: list[AssetSpecifier]) -> list[Quotation]:
        self.calls.append(list(assets))
        if self.error is not None:
            raise self.error
        return [
            Quotation(
                symbol=a.symbol,
                name=self.name,
                blockchain=a.blockchain,
                price=self.price,
                timestamp=int(time.time()),
            )
            for a in assets
        ]


class StubTickerClient:
    def __init__(self, price: Decimal) -> None:
        self.price = price

    def get_ticker_price(self, symbol: str) -> Decimal:
        return self.price


DOT = AssetSpecifier(blockchain="Polkadot", symbol="DOT")
EUR = AssetSpecifier(blockchain="FIAT", symbol="EUR-USD")
ARS = AssetSpecifier(blockchain="FIAT", symbol="ARS-USD")
BTC = AssetSpecifier(blockchain="Bitcoin", symbol="BTC")


class PriceDispatcherTest(unittest.TestCase):
    def test_asset_supported_by_one_category_yields_one_quotation(self):
        market = StubSource("market", {DOT.key})
        dispatcher = PriceDispatcher([StubSource("custom", set()), StubSource("fiat", set()), market])

        quotes = dispatcher.get_quotations([DOT])

        self.assertEqual(len(quotes), 1)
        self.assertEqual(quotes[0].name, "market")

    def test_higher_priority_category_owns_shared_asset(self):
        custom = StubSource("custom", {ARS.key}, price="0.001")
        fiat = StubSource("fiat", {ARS.key, EUR.key}, price="1.08")
        dispatcher = PriceDispatcher([custom, fiat])

        quotes = dispatcher.get_quotations([ARS, EUR])

        by_symbol = {q.symbol: q for q in quotes}
        self.assertEqual(by_symbol["ARS-USD"].name, "custom")
        self.assertEqual(by_symbol["EUR-USD"].name, "fiat")
        self.assertEqual(fiat.calls, [[EUR]])
        self.assertEqual(len(quotes), 2)

    def test_unsupported_assets_are_dropped(self):
        dispatcher = PriceDispatcher([StubSource("market", {DOT.key})])

        quotes = dispatcher.get_quotations([BTC, DOT])

        self.assertEqual([q.symbol for q in quotes], ["DOT"])
        self.assertEqual(dispatcher.metrics()["unsupported"], 1)

    def test_failing_category_does_not_affect_others(self):
        fiat = StubSource("fiat", {EUR.key}, error=ProviderTransportError("polygon", "timeout"))
        market = StubSource("market", {DOT.key})
        dispatcher = PriceDispatcher([fiat, market])

        quotes = dispatcher.get_quotations([EUR, DOT])

        self.assertEqual([q.symbol for q in quotes], ["DOT"])
        self.assertEqual(dispatcher.metrics()["failed_sources"], ["fiat"])

    def test_unexpected_exception_is_contained(self):
        dispatcher = PriceDispatcher([StubSource("market", {DOT.key}, error=KeyError("usd"))])

        self.assertEqual(dispatcher.get_quotations([DOT]), [])

    def test_empty_universe_returns_empty_list_without_calls(self):
        market = StubSource("market", {DOT.key})
        dispatcher = PriceDispatcher([market])

        self.assertEqual(dispatcher.get_quotations([]), [])
        self.assertEqual(market.calls, [])

    def test_non_positive_prices_are_dropped_for_every_category(self):
        dispatcher = PriceDispatcher(
            [StubSource("custom", {ARS.key}, price="0"), StubSource("market", {DOT.key}, price="-1")]
        )

        self.assertEqual(dispatcher.get_quotations([ARS, DOT]), [])
        self.assertEqual(dispatcher.metrics()["dropped_non_positive"], 2)

    def test_zero_reciprocal_from_cross_rate_feed_is_not_published(self):
        custom = CustomPriceSource(
            [CrossRateFeed(StubTickerClient(Decimal(0)), blockchain="FIAT", symbol="ARS-USD", market_symbol="USDTARS")]
        )
        dispatcher = PriceDispatcher([custom])

        self.assertEqual(dispatcher.get_quotations([ARS]), [])

    def test_duplicate_assets_are_resolved_once(self):
        market = StubSource("market", {DOT.key})
        dispatcher = PriceDispatcher([market])

        quotes = dispatcher.get_quotations([DOT, DOT])

        self.assertEqual(len(quotes), 1)
        self.assertEqual(market.calls, [[DOT]])

    def test_partition_reports_claims_in_priority_order(self):
        custom = StubSource("custom", {ARS.key})
        fiat = StubSource("fiat", {ARS.key, EUR.key})
        dispatcher = PriceDispatcher([custom, fiat])

        assigned, unsupported = dispatcher.partition([ARS, EUR, BTC])

        self.assertEqual([(s.name, claimed) for s, claimed in assigned], [("custom", [ARS]), ("fiat", [EUR])])
        self.assertEqual(unsupported, [BTC])


def make_settings(**overrides):
    values = {
        "HTTP_TIMEOUT_SECONDS": 5.0,
        "BINANCE_HOST_URL": "https://binance.test",
        "AMPLITUDE_SQUID_URL": "https://squid.test/graphql",
        "ENABLE_BRL_CROSS_RATE": False,
        "PG_API_KEY": "pg-key",
        "PG_HOST_URL": "https://polygon.test",
        "CG_API_KEY": "cg-key",
        "CG_HOST_URL": "https://cg.test/api/v3",
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class BuildDispatcherTest(unittest.TestCase):
    def test_categories_are_ordered_custom_fiat_market(self):
        dispatcher = build_dispatcher(make_settings())

        self.assertIsInstance(dispatcher.sources[0], CustomPriceSource)
        self.assertIsInstance(dispatcher.sources[1], FiatConversionSource)
        self.assertIsInstance(dispatcher.sources[2], GenericMarketSource)

    def test_ars_cross_rate_outranks_fiat_source(self):
        dispatcher = build_dispatcher(make_settings())

        assigned, _ = dispatcher.partition([ARS, EUR])

        self.assertEqual(assigned[0][1], [ARS])
        self.assertEqual(assigned[1][1], [EUR])

    def test_brl_cross_rate_is_opt_in(self):
        brl = AssetSpecifier(blockchain="FIAT", symbol="BRL-USD")

        default = build_dispatcher(make_settings())
        enabled = build_dispatcher(make_settings(ENABLE_BRL_CROSS_RATE=True))

        self.assertFalse(default.sources[0].supports(brl))
        self.assertTrue(enabled.sources[0].supports(brl))

    def test_sources_without_api_key_are_left_out(self):
        dispatcher = build_dispatcher(make_settings(PG_API_KEY=None, CG_API_KEY=None))

        self.assertEqual([s.name for s in dispatcher.sources], ["custom"])


if __name__ == "__main__":
    unittest.main()
