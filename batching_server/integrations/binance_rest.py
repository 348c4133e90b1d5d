from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from batching_server.errors import ProviderProtocolError
from batching_server.integrations.http_client import JsonHttpClient, to_decimal


class BinanceRestClient(JsonHttpClient):
    provider = "binance"

    def __init__(
        self,
        base_url: str = "https://api.binance.com",
        *,
        session: Optional[Any] = None,
        timeout: float = 5.0,
    ) -> None:
        super().__init__(base_url, session=session, timeout=timeout)

    def get_ticker_price(self, symbol: str) -> Decimal:
        payload = self.get_json("/api/v3/ticker/price", params={"symbol": symbol.upper()})
        if not isinstance(payload, dict):
            raise ProviderProtocolError(self.provider, "ticker response must be an object")
        return to_decimal(payload.get("price"), provider=self.provider, field_name=f"{symbol}.price")
