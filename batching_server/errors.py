from __future__ import annotations


class PriceServerError(Exception):
    """Base class for every error raised inside the batching pipeline."""


class ProviderError(PriceServerError):
    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderTransportError(ProviderError):
    """Network failure or timeout while talking to an upstream provider."""


class ProviderProtocolError(ProviderError):
    """Non-success status or a payload that does not match the provider contract."""


class UnsupportedAssetError(PriceServerError):
    pass


class ConversionOverflowError(PriceServerError, OverflowError):
    """Decimal value cannot be represented as an unsigned 128-bit fixed-point number."""


class ReciprocalUndefinedError(PriceServerError, ZeroDivisionError):
    pass
