from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from batching_server.api.routes import router
from batching_server.config.settings import get_settings
from batching_server.services.coin_storage import CoinInfoStorage
from batching_server.services.dispatcher import build_dispatcher
from batching_server.services.price_updater import PriceUpdater


def build_price_updater(settings, storage: CoinInfoStorage) -> PriceUpdater:
    return PriceUpdater(
        storage=storage,
        dispatcher=build_dispatcher(settings),
        supported_currencies=settings.SUPPORTED_CURRENCIES,
        interval_sec=settings.UPDATE_INTERVAL_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.get_settings()
    updater = app.state.build_price_updater(settings, app.state.coin_storage)
    app.state.price_updater = updater
    updater.start()

    try:
        yield
    finally:
        updater.stop()


app = FastAPI(title="Price Batching Server", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/v1")

# NOTE: factories live on app.state so tests can swap them before startup.
app.state.get_settings = get_settings
app.state.build_price_updater = build_price_updater
app.state.coin_storage = CoinInfoStorage()
app.state.price_updater = None
