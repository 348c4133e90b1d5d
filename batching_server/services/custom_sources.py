from __future__ import annotations

import time
from decimal import Decimal

from batching_server.errors import (
    ReciprocalUndefinedError,
    UnsupportedAssetError,
)
from batching_server.schemas.asset import AssetSpecifier, Quotation


def _matches(asset: AssetSpecifier, blockchain: str, symbol: str) -> bool:
    return asset.blockchain.upper() == blockchain.upper() and asset.symbol.upper() == symbol.upper()


def reciprocal(value: Decimal) -> Decimal:
    if value == 0:
        raise ReciprocalUndefinedError("reciprocal of zero is undefined")
    return Decimal(1) / value


class AmpeIndexFeed:
    """Amplitude native token, read from the Amplitude squid GraphQL index."""

    BLOCKCHAIN = "Amplitude"
    SYMBOL = "AMPE"

    def __init__(self, client) -> None:
        self.client = client

    def supports(self, asset: AssetSpecifier) -> bool:
        return _matches(asset, self.BLOCKCHAIN, self.SYMBOL)

    def get_quotation(self, asset: AssetSpecifier) -> Quotation:
        price = self.client.get_ampe_price()
        return Quotation(
            symbol=self.SYMBOL,
            name=self.SYMBOL,
            blockchain=self.BLOCKCHAIN,
            price=price,
            timestamp=int(time.time()),
        )


class CrossRateFeed:
    """`<FROM>-USD` fiat price derived from a market's USDT/<FROM> ticker.

    The market quotes how many FROM units one USDT buys, so the published price
    is its reciprocal, optionally reduced by `bps_reduction` basis points.
    """

    def __init__(
        self,
        client,
        *,
        blockchain: str,
        symbol: str,
        market_symbol: str,
        bps_reduction: int = 0,
    ) -> None:
        self.client = client
        self.blockchain = blockchain
        self.symbol = symbol
        self.market_symbol = market_symbol
        self.bps_reduction = bps_reduction

    def supports(self, asset: AssetSpecifier) -> bool:
        return _matches(asset, self.blockchain, self.symbol)

    def get_quotation(self, asset: AssetSpecifier) -> Quotation:
        market_price = self.client.get_ticker_price(self.market_symbol)
        try:
            price = reciprocal(market_price)
        except ReciprocalUndefinedError:
            print(f"[CUSTOM][reciprocal_zero] market_symbol={self.market_symbol}", flush=True)
            price = Decimal(0)

        if self.bps_reduction:
            price = max(price - price * Decimal(self.bps_reduction) / Decimal(10_000), Decimal(0))

        return Quotation(
            symbol=self.symbol,
            name=self.symbol,
            blockchain=self.blockchain,
            price=price,
            timestamp=int(time.time()),
        )


class CustomPriceSource:
    """Ordered registry of single-asset feeds; the first supporting feed wins."""

    name = "custom"

    def __init__(self, feeds: list | None = None) -> None:
        self.feeds = list(feeds or [])

    def register(self, feed) -> None:
        self.feeds.append(feed)

    def _feed_for(self, asset: AssetSpecifier):
        for feed in self.feeds:
            if feed.supports(asset):
                return feed
        return None

    def supports(self, asset: AssetSpecifier) -> bool:
        return self._feed_for(asset) is not None

    def get_quotation(self, asset: AssetSpecifier) -> Quotation:
        feed = self._feed_for(asset)
        if feed is None:
            raise UnsupportedAssetError(f"no custom feed for {asset}")
        return feed.get_quotation(asset)

    def get_quotations(self, assets: list[AssetSpecifier]) -> list[Quotation]:
        # feeds are independent: one failing asset never affects the others
        out: list[Quotation] = []
        for asset in assets:
            try:
                out.append(self.get_quotation(asset))
            except Exception as exc:
                print(f"[CUSTOM][quote_error] asset={asset} error={exc!r}", flush=True)
        return out
