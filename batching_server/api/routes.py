from fastapi import APIRouter, HTTPException, Request

from batching_server.schemas.asset import AssetSpecifier

router = APIRouter()


def _serialize(rows) -> list[dict]:
    return [row.model_dump(by_alias=True) for row in rows]


@router.get('/currencies')
def get_currencies(currencies: str, request: Request):
    try:
        specs = [AssetSpecifier.parse(c) for c in currencies.split(',') if c.strip()]
    except ValueError as exc:
        raise HTTPException(status_code=400, detail='INVALID_ASSET_SPECIFIER') from exc
    storage = request.app.state.coin_storage
    return _serialize(storage.lookup(specs))


@router.post('/currencies')
def post_currencies(specs: list[AssetSpecifier], request: Request):
    storage = request.app.state.coin_storage
    return _serialize(storage.lookup(specs))


@router.get('/metrics/updater')
def updater_metrics(request: Request):
    storage = request.app.state.coin_storage
    metrics = {
        'snapshot_size': len(storage),
        'snapshot_updated_at': storage.updated_at,
    }
    updater = getattr(request.app.state, 'price_updater', None)
    if updater is not None:
        metrics.update(updater.metrics())
        metrics['dispatcher'] = updater.dispatcher.metrics()
    return metrics
