from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from batching_server.errors import ProviderProtocolError
from batching_server.integrations.http_client import JsonHttpClient, to_decimal

AMPE_PRICE_QUERY = 'query AmpePriceView { bundleById(id: "1") { ethPrice } }'


class AmplitudeSquidClient(JsonHttpClient):
    """Amplitude squid GraphQL client. `ethPrice` of the bundle is the AMPE price."""

    provider = "amplitude-squid"

    def __init__(
        self,
        url: str = "https://squid.subsquid.io/amplitude-squid/graphql",
        *,
        session: Optional[Any] = None,
        timeout: float = 5.0,
    ) -> None:
        super().__init__(url, session=session, timeout=timeout)

    def get_ampe_price(self) -> Decimal:
        payload = self.post_json("", {"query": AMPE_PRICE_QUERY, "variables": {}})
        if not isinstance(payload, dict):
            raise ProviderProtocolError(self.provider, "response must be an object")
        if payload.get("errors"):
            raise ProviderProtocolError(self.provider, f"graphql errors: {payload['errors']}")

        data = payload.get("data")
        bundle = data.get("bundleById") if isinstance(data, dict) else None
        if not isinstance(bundle, dict):
            raise ProviderProtocolError(self.provider, "no price found for AMPE")
        return to_decimal(bundle.get("ethPrice"), provider=self.provider, field_name="ethPrice")
