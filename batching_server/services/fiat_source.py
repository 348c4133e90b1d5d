from __future__ import annotations

import time
from decimal import Decimal

from batching_server.schemas.asset import AssetSpecifier, Quotation

FIAT_BLOCKCHAIN = "FIAT"
TARGET_CURRENCY = "USD"


def extract_source_currency(asset: AssetSpecifier) -> str | None:
    """Return FROM of a `FIAT` / `<FROM>-USD` specifier, upper-cased, or None."""
    if asset.blockchain.upper() != FIAT_BLOCKCHAIN:
        return None
    parts = asset.symbol.split("-")
    if len(parts) != 2:
        return None
    from_currency, to_currency = (p.strip().upper() for p in parts)
    if not from_currency or to_currency != TARGET_CURRENCY:
        return None
    return from_currency


def select_fiat_price(row: dict) -> Decimal | None:
    bid = row.get("bid") or Decimal(0)
    if bid > 0:
        return bid
    prev_close = row.get("prev_close") or Decimal(0)
    if prev_close > 0:
        return prev_close
    return None


class FiatConversionSource:
    """Fiat `<FROM>-USD` rates from one batched forex snapshot request."""

    name = "fiat"

    def __init__(self, client) -> None:
        self.client = client

    def supports(self, asset: AssetSpecifier) -> bool:
        return extract_source_currency(asset) is not None

    def get_quotations(self, assets: list[AssetSpecifier]) -> list[Quotation]:
        now = int(time.time())
        out: list[Quotation] = []
        ticker_to_assets: dict[str, list[AssetSpecifier]] = {}

        for asset in assets:
            from_currency = extract_source_currency(asset)
            if from_currency is None:
                print(f"[FIAT][unsupported_asset] asset={asset}", flush=True)
                continue
            if from_currency == TARGET_CURRENCY:
                out.append(self._quotation(asset, Decimal(1), now))
                continue
            ticker = self.client.ticker_for(from_currency, TARGET_CURRENCY)
            ticker_to_assets.setdefault(ticker, []).append(asset)

        if not ticker_to_assets:
            return out

        # one request for every ticker; a failure here drops the whole batch
        rows = self.client.get_forex_snapshot(list(ticker_to_assets))

        for ticker, mapped_assets in ticker_to_assets.items():
            row = rows.get(ticker)
            if row is None:
                print(f"[FIAT][missing_ticker] ticker={ticker}", flush=True)
                continue
            price = select_fiat_price(row)
            if price is None:
                print(f"[FIAT][no_positive_price] ticker={ticker}", flush=True)
                continue
            ts = row.get("updated") or now
            for asset in mapped_assets:
                out.append(self._quotation(asset, price, ts))

        return out

    @staticmethod
    def _quotation(asset: AssetSpecifier, price: Decimal, ts: int) -> Quotation:
        return Quotation(
            symbol=asset.symbol,
            name=asset.symbol,
            blockchain=FIAT_BLOCKCHAIN,
            price=price,
            timestamp=ts,
        )
