from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import requests

from batching_server.errors import ProviderProtocolError, ProviderTransportError


def to_decimal(value: Any, *, provider: str, field_name: str) -> Decimal:
    if value is None or value == "" or isinstance(value, bool):
        raise ProviderProtocolError(provider, f"missing value for {field_name}")
    try:
        # str() first so floats keep their shortest repr instead of binary noise
        parsed = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ProviderProtocolError(provider, f"invalid numeric value for {field_name}: {value!r}") from exc
    if not parsed.is_finite():
        raise ProviderProtocolError(provider, f"invalid numeric value for {field_name}: {value!r}")
    return parsed


def to_decimal_default(value: Any, default: Decimal = Decimal(0)) -> Decimal:
    try:
        if value is None or value == "":
            return default
        parsed = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return default
    return parsed if parsed.is_finite() else default


class JsonHttpClient:
    """Shared request/decode plumbing for the upstream price providers."""

    provider = "http"

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[Any] = None,
        timeout: float = 5.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {"accept": "application/json"}

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}" if path else self.base_url
        call = self.session.post if method == "POST" else self.session.get
        try:
            response = call(url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except (requests.RequestException, OSError) as exc:
            raise ProviderTransportError(self.provider, f"request failed: {exc}") from exc

        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            body = str(getattr(response, "text", "") or "").strip()
            raise ProviderProtocolError(
                self.provider, f"status={getattr(response, 'status_code', None)} body={body[:200]}"
            ) from exc

        try:
            # keep full precision: JSON floats decode straight to Decimal
            return response.json(parse_float=Decimal)
        except ValueError as exc:
            raise ProviderProtocolError(self.provider, f"could not decode response: {exc}") from exc

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._request("GET", path, params=params)

    def post_json(self, path: str, payload: Dict[str, Any]) -> Any:
        return self._request("POST", path, json=payload)
