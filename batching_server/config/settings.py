import os
from functools import lru_cache

from pydantic import BaseModel, PositiveFloat, PositiveInt, field_validator

from batching_server.schemas.asset import AssetSpecifier

DEFAULT_SUPPORTED_CURRENCIES = (
    "FIAT:USD-USD,FIAT:EUR-USD,FIAT:BRL-USD,FIAT:AUD-USD,FIAT:NGN-USD,FIAT:TZS-USD,"
    "FIAT:ARS-USD,Pendulum:PEN,Amplitude:AMPE,Polkadot:DOT,Kusama:KSM,Astar:ASTR,"
    "Bifrost:BNC,Bifrost:vDOT,HydraDX:HDX,Moonbeam:GLMR,Polkadex:PDEX,Stellar:XLM"
)


def parse_supported_currencies(raw: str) -> list[AssetSpecifier]:
    out: list[AssetSpecifier] = []
    for item in raw.split(","):
        if not item.strip():
            continue
        spec = AssetSpecifier.parse(item)
        if spec not in out:
            out.append(spec)
    return out


class Settings(BaseModel):
    UPDATE_INTERVAL_SECONDS: PositiveInt = 10
    SUPPORTED_CURRENCIES: list[AssetSpecifier]
    CG_API_KEY: str | None = None
    CG_HOST_URL: str = "https://pro-api.coingecko.com/api/v3"
    PG_API_KEY: str | None = None
    PG_HOST_URL: str = "https://api.polygon.io"
    BINANCE_HOST_URL: str = "https://api.binance.com"
    AMPLITUDE_SQUID_URL: str = "https://squid.subsquid.io/amplitude-squid/graphql"
    ENABLE_BRL_CROSS_RATE: bool = False
    HTTP_TIMEOUT_SECONDS: PositiveFloat = 5.0

    @field_validator("SUPPORTED_CURRENCIES", mode="before")
    @classmethod
    def split_currency_list(cls, value):
        if not isinstance(value, str):
            return value
        currencies = parse_supported_currencies(value)
        if not currencies:
            currencies = parse_supported_currencies(DEFAULT_SUPPORTED_CURRENCIES)
        return currencies

    @field_validator("CG_API_KEY", "PG_API_KEY")
    @classmethod
    def blank_key_is_missing(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "SUPPORTED_CURRENCIES": os.getenv("SUPPORTED_CURRENCIES", DEFAULT_SUPPORTED_CURRENCIES),
            "CG_API_KEY": os.getenv("CG_API_KEY"),
            "PG_API_KEY": os.getenv("PG_API_KEY"),
        }
        # unset variables fall back to the field defaults
        for name in (
            "UPDATE_INTERVAL_SECONDS",
            "CG_HOST_URL",
            "PG_HOST_URL",
            "BINANCE_HOST_URL",
            "AMPLITUDE_SQUID_URL",
            "ENABLE_BRL_CROSS_RATE",
            "HTTP_TIMEOUT_SECONDS",
        ):
            raw = os.getenv(name)
            if raw is not None and raw.strip() != "":
                values[name] = raw.strip()

        return cls.model_validate(values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
