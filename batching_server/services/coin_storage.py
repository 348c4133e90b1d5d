from __future__ import annotations

import time
from types import MappingProxyType
from typing import Iterable, Mapping

from batching_server.schemas.asset import AssetSpecifier
from batching_server.schemas.coin_info import CoinInfo

Snapshot = Mapping[tuple[str, str], CoinInfo]


class CoinInfoStorage:
    """Latest published prices, swapped wholesale on every update cycle.

    The snapshot is an immutable mapping held behind a single attribute. The
    writer builds a complete new mapping and rebinds the attribute in one step;
    readers take the reference once per call and never lock, so a lookup sees
    either the previous snapshot or the new one, never a mix.
    """

    def __init__(self) -> None:
        self._snapshot: Snapshot = MappingProxyType({})
        self._updated_at: int | None = None

    def replace(self, records: Iterable[CoinInfo]) -> None:
        rows = {(r.blockchain, r.symbol): r for r in records}
        self._snapshot = MappingProxyType(rows)
        self._updated_at = int(time.time())

    def lookup(self, specs: Iterable[AssetSpecifier]) -> list[CoinInfo]:
        snapshot = self._snapshot
        out: list[CoinInfo] = []
        for spec in specs:
            row = snapshot.get((spec.blockchain, spec.symbol))
            if row is not None:
                out.append(row)
        return out

    def get(self, spec: AssetSpecifier) -> CoinInfo | None:
        return self._snapshot.get((spec.blockchain, spec.symbol))

    def list_all(self) -> list[CoinInfo]:
        return list(self._snapshot.values())

    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def updated_at(self) -> int | None:
        return self._updated_at

    def __len__(self) -> int:
        return len(self._snapshot)
