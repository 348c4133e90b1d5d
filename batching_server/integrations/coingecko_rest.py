from __future__ import annotations

import time
from decimal import Decimal
from typing import Any, Dict, Optional

from batching_server.errors import ProviderProtocolError
from batching_server.integrations.http_client import JsonHttpClient, to_decimal, to_decimal_default


class CoingeckoRestClient(JsonHttpClient):
    """CoinGecko `simple/price` client, always quoting USD at full precision."""

    provider = "coingecko"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://pro-api.coingecko.com/api/v3",
        *,
        session: Optional[Any] = None,
        timeout: float = 5.0,
    ) -> None:
        super().__init__(base_url, session=session, timeout=timeout)
        self.api_key = api_key

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        # the demo tier uses a different header than the pro API
        if "pro-api" in self.base_url:
            headers["x-cg-pro-api-key"] = self.api_key
        else:
            headers["x-cg-demo-api-key"] = self.api_key
        return headers

    def get_prices(self, ids: list[str]) -> Dict[str, Dict[str, Any]]:
        """Return `{id: {"usd", "usd_24h_vol", "usd_market_cap", "last_updated_at"}}`.

        Ids missing from the response are simply absent from the result.
        """
        if not ids:
            return {}

        payload = self.get_json(
            "/simple/price",
            params={
                "ids": ",".join(ids),
                "vs_currencies": "usd",
                "precision": "full",
                "include_market_cap": "true",
                "include_24hr_vol": "true",
                "include_24hr_change": "false",
                "include_last_updated_at": "true",
            },
        )
        if not isinstance(payload, dict):
            raise ProviderProtocolError(self.provider, "simple/price response must be an object")

        now = int(time.time())
        out: Dict[str, Dict[str, Any]] = {}
        for coin_id, row in payload.items():
            if not isinstance(row, dict):
                raise ProviderProtocolError(self.provider, f"invalid price row for {coin_id}")
            out[str(coin_id)] = {
                "usd": to_decimal(row.get("usd"), provider=self.provider, field_name=f"{coin_id}.usd"),
                "usd_market_cap": to_decimal_default(row.get("usd_market_cap")),
                "usd_24h_vol": to_decimal_default(row.get("usd_24h_vol")),
                "last_updated_at": int(to_decimal_default(row.get("last_updated_at"), Decimal(now))),
            }
        return out
