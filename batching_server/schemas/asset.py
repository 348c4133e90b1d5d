from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator


class AssetSpecifier(BaseModel):
    model_config = ConfigDict(frozen=True)

    blockchain: str
    symbol: str

    @classmethod
    def parse(cls, raw: str) -> "AssetSpecifier":
        """Parse the `<blockchain>:<symbol>` form used by configuration and queries."""
        blockchain, sep, symbol = raw.strip().partition(":")
        if not sep or not blockchain.strip() or not symbol.strip():
            raise ValueError(f"invalid asset specifier: {raw!r}")
        return cls(blockchain=blockchain.strip(), symbol=symbol.strip())

    @property
    def key(self) -> tuple[str, str]:
        return (self.blockchain, self.symbol)

    def __str__(self) -> str:
        return f"{self.blockchain}:{self.symbol}"


class Quotation(BaseModel):
    symbol: str
    name: str
    blockchain: str | None = None
    price: Decimal
    supply: Decimal = Decimal(0)
    timestamp: int

    @field_validator("price", "supply")
    @classmethod
    def reject_non_finite(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("price must be a finite decimal")
        return value
