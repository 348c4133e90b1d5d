from __future__ import annotations

from batching_server.schemas.asset import AssetSpecifier, Quotation

# (BLOCKCHAIN, SYMBOL) upper-cased -> CoinGecko id
COINGECKO_IDS: dict[tuple[str, str], str] = {
    ("PENDULUM", "PEN"): "pendulum-chain",
    ("POLKADOT", "DOT"): "polkadot",
    ("KUSAMA", "KSM"): "kusama",
    ("ASTAR", "ASTR"): "astar",
    ("BIFROST", "BNC"): "bifrost-native-coin",
    ("BIFROST", "VDOT"): "voucher-dot",
    ("HYDRADX", "HDX"): "hydradx",
    ("MOONBEAM", "GLMR"): "moonbeam",
    ("POLKADEX", "PDEX"): "polkadex",
    ("STELLAR", "XLM"): "stellar",
}


def convert_to_coingecko_id(asset: AssetSpecifier) -> str | None:
    return COINGECKO_IDS.get((asset.blockchain.upper(), asset.symbol.upper()))


class GenericMarketSource:
    """Allow-listed crypto assets priced by one batched CoinGecko query."""

    name = "market"

    def __init__(self, client) -> None:
        self.client = client

    def supports(self, asset: AssetSpecifier) -> bool:
        return convert_to_coingecko_id(asset) is not None

    def get_quotations(self, assets: list[AssetSpecifier]) -> list[Quotation]:
        id_to_assets: dict[str, list[AssetSpecifier]] = {}
        for asset in assets:
            coin_id = convert_to_coingecko_id(asset)
            if coin_id is None:
                print(f"[MARKET][unsupported_asset] asset={asset}", flush=True)
                continue
            id_to_assets.setdefault(coin_id, []).append(asset)

        if not id_to_assets:
            return []

        prices = self.client.get_prices(list(id_to_assets))

        out: list[Quotation] = []
        for coin_id, mapped_assets in id_to_assets.items():
            row = prices.get(coin_id)
            if row is None:
                print(f"[MARKET][missing_price] id={coin_id}", flush=True)
                continue
            for asset in mapped_assets:
                out.append(
                    Quotation(
                        symbol=asset.symbol,
                        name=asset.symbol,
                        blockchain=asset.blockchain,
                        price=row["usd"],
                        supply=row.get("usd_24h_vol") or 0,
                        timestamp=row["last_updated_at"],
                    )
                )
        return out
