from __future__ import annotations

from typing import Any, Dict, Optional

from batching_server.errors import ProviderProtocolError
from batching_server.integrations.http_client import JsonHttpClient, to_decimal_default


class PolygonRestClient(JsonHttpClient):
    """Polygon.io forex snapshot client."""

    provider = "polygon"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.polygon.io",
        *,
        session: Optional[Any] = None,
        timeout: float = 5.0,
    ) -> None:
        super().__init__(base_url, session=session, timeout=timeout)
        self.api_key = api_key

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def ticker_for(from_currency: str, to_currency: str = "USD") -> str:
        return f"C:{from_currency.upper()}{to_currency.upper()}"

    def get_forex_snapshot(self, tickers: list[str]) -> Dict[str, Dict[str, Any]]:
        """Return `{ticker: {"bid", "prev_close", "updated"}}` from one snapshot request.

        `bid` and `prev_close` are Decimals (zero when absent); `updated` is unix
        seconds or None.
        """
        if not tickers:
            return {}

        payload = self.get_json(
            "/v2/snapshot/locale/global/markets/forex/tickers",
            params={"tickers": ",".join(tickers)},
        )
        if not isinstance(payload, dict):
            raise ProviderProtocolError(self.provider, "snapshot response must be an object")
        status = str(payload.get("status", "OK")).upper()
        if status not in {"OK", "DELAYED"}:
            raise ProviderProtocolError(self.provider, f"snapshot status={status}")
        rows = payload.get("tickers") or []
        if not isinstance(rows, list):
            raise ProviderProtocolError(self.provider, "snapshot tickers must be a list")

        out: Dict[str, Dict[str, Any]] = {}
        for row in rows:
            if not isinstance(row, dict) or not row.get("ticker"):
                continue
            last_quote = row.get("lastQuote") if isinstance(row.get("lastQuote"), dict) else {}
            prev_day = row.get("prevDay") if isinstance(row.get("prevDay"), dict) else {}
            updated_ns = row.get("updated")
            updated = None
            if isinstance(updated_ns, (int, float)) and updated_ns > 0:
                updated = int(updated_ns // 1_000_000_000)
            out[str(row["ticker"])] = {
                "bid": to_decimal_default(last_quote.get("b")),
                "prev_close": to_decimal_default(prev_day.get("c")),
                "updated": updated,
            }
        return out
