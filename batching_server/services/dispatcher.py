from __future__ import annotations

from batching_server.integrations.amplitude_graphql import AmplitudeSquidClient
from batching_server.integrations.binance_rest import BinanceRestClient
from batching_server.integrations.coingecko_rest import CoingeckoRestClient
from batching_server.integrations.polygon_rest import PolygonRestClient
from batching_server.schemas.asset import AssetSpecifier, Quotation
from batching_server.services.custom_sources import AmpeIndexFeed, CrossRateFeed, CustomPriceSource
from batching_server.services.fiat_source import FiatConversionSource
from batching_server.services.market_source import GenericMarketSource


class PriceDispatcher:
    """Routes every asset to the first source category that supports it.

    `sources` is ordered by priority, highest first. Each source exposes
    `name`, `supports(asset)` and `get_quotations(assets)`. A source call that
    raises drops only the assets assigned to that source for this cycle.
    """

    def __init__(self, sources: list) -> None:
        self.sources = list(sources)
        self.last_target_count = 0
        self.last_claimed: dict[str, int] = {}
        self.last_unsupported = 0
        self.last_failed_sources: list[str] = []
        self.last_dropped_non_positive = 0
        self.last_final_count = 0

    def partition(self, assets: list[AssetSpecifier]):
        """Split assets into `(source, claimed)` pairs in priority order plus the unclaimed rest."""
        remaining: list[AssetSpecifier] = []
        seen: set[AssetSpecifier] = set()
        for asset in assets:
            if asset in seen:
                continue
            seen.add(asset)
            remaining.append(asset)

        assigned: list[tuple[object, list[AssetSpecifier]]] = []
        for source in self.sources:
            claimed = [a for a in remaining if source.supports(a)]
            taken = set(claimed)
            remaining = [a for a in remaining if a not in taken]
            assigned.append((source, claimed))
        return assigned, remaining

    def get_quotations(self, assets: list[AssetSpecifier]) -> list[Quotation]:
        assigned, unsupported = self.partition(assets)

        for asset in unsupported:
            print(f"[DISPATCH][unsupported_asset] asset={asset}", flush=True)

        out: list[Quotation] = []
        failed: list[str] = []
        dropped_non_positive = 0
        for source, claimed in assigned:
            if not claimed:
                continue
            try:
                quotes = source.get_quotations(claimed)
            except Exception as exc:
                failed.append(source.name)
                print(
                    f"[DISPATCH][source_error] source={source.name} dropped={len(claimed)} error={exc}",
                    flush=True,
                )
                continue

            for quote in quotes:
                if quote.price <= 0:
                    dropped_non_positive += 1
                    print(
                        f"[DISPATCH][non_positive_price] source={source.name} "
                        f"symbol={quote.symbol} price={quote.price}",
                        flush=True,
                    )
                    continue
                out.append(quote)

        self.last_target_count = sum(len(c) for _, c in assigned) + len(unsupported)
        self.last_claimed = {source.name: len(claimed) for source, claimed in assigned}
        self.last_unsupported = len(unsupported)
        self.last_failed_sources = failed
        self.last_dropped_non_positive = dropped_non_positive
        self.last_final_count = len(out)

        print(
            "[DISPATCH][batch_resolve] "
            f"target_count={self.last_target_count} "
            + " ".join(f"{name}_count={count}" for name, count in self.last_claimed.items())
            + f" unsupported={len(unsupported)} failed_sources={','.join(failed) or '-'} "
            f"final_count={len(out)}",
            flush=True,
        )
        return out

    def metrics(self) -> dict:
        return {
            "target_count": self.last_target_count,
            "claimed": dict(self.last_claimed),
            "unsupported": self.last_unsupported,
            "failed_sources": list(self.last_failed_sources),
            "dropped_non_positive": self.last_dropped_non_positive,
            "final_count": self.last_final_count,
        }


def build_dispatcher(settings, *, session=None) -> PriceDispatcher:
    timeout = settings.HTTP_TIMEOUT_SECONDS
    binance = BinanceRestClient(settings.BINANCE_HOST_URL, session=session, timeout=timeout)

    custom = CustomPriceSource(
        [
            AmpeIndexFeed(AmplitudeSquidClient(settings.AMPLITUDE_SQUID_URL, session=session, timeout=timeout)),
            CrossRateFeed(binance, blockchain="FIAT", symbol="ARS-USD", market_symbol="USDTARS"),
        ]
    )
    if settings.ENABLE_BRL_CROSS_RATE:
        custom.register(
            CrossRateFeed(binance, blockchain="FIAT", symbol="BRL-USD", market_symbol="USDTBRL", bps_reduction=5)
        )
    sources: list = [custom]

    if settings.PG_API_KEY:
        polygon = PolygonRestClient(settings.PG_API_KEY, settings.PG_HOST_URL, session=session, timeout=timeout)
        sources.append(FiatConversionSource(polygon))
    else:
        print("[DISPATCH][source_disabled] source=fiat reason=PG_API_KEY not set", flush=True)

    if settings.CG_API_KEY:
        coingecko = CoingeckoRestClient(settings.CG_API_KEY, settings.CG_HOST_URL, session=session, timeout=timeout)
        sources.append(GenericMarketSource(coingecko))
    else:
        print("[DISPATCH][source_disabled] source=market reason=CG_API_KEY not set", flush=True)

    return PriceDispatcher(sources)
