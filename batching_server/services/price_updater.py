from __future__ import annotations

import threading
import time
from typing import Callable

from batching_server.schemas.asset import AssetSpecifier
from batching_server.schemas.updater import UpdaterStatus
from batching_server.services.coin_storage import CoinInfoStorage
from batching_server.services.fixed_point import convert_to_coin_info


def next_sleep_duration(interval_sec: float, elapsed_sec: float) -> float:
    """Time left in the current interval; zero once a cycle overruns it."""
    return max(0.0, float(interval_sec) - float(elapsed_sec))


class PriceUpdater:
    """Background worker: dispatcher -> fixed-point conversion -> storage replace.

    Runs on one daemon thread from process start until shutdown and is the only
    writer of `storage`. A cycle that raises is logged and retried after one interval.
    """

    def __init__(
        self,
        *,
        storage: CoinInfoStorage,
        dispatcher,
        supported_currencies: list[AssetSpecifier],
        interval_sec: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.storage = storage
        self.dispatcher = dispatcher
        self.supported_currencies = list(supported_currencies)
        self.interval_sec = interval_sec
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._stopped = False
        self._status = UpdaterStatus()

    def update_prices(self) -> int:
        try:
            quotations = self.dispatcher.get_quotations(self.supported_currencies)
        except Exception as exc:
            # treated as an empty cycle so stale prices still age out
            print(f"[UPDATER][dispatch_error] error={exc!r}", flush=True)
            quotations = []

        records = []
        errors = 0
        for quotation in quotations:
            try:
                records.append(convert_to_coin_info(quotation))
            except OverflowError as exc:
                errors += 1
                print(
                    f"[UPDATER][conversion_error] symbol={quotation.symbol} price={quotation.price} error={exc}",
                    flush=True,
                )

        self.storage.replace(records)
        self._status.conversion_errors += errors
        self._status.last_published = len(records)
        return len(records)

    def run_once(self) -> float:
        """Run one cycle and return how long to sleep before the next one."""
        started = self._clock()
        self._status.state = "RUNNING"
        try:
            self.update_prices()
        finally:
            self._status.state = "IDLE"

        elapsed = self._clock() - started
        sleep_sec = next_sleep_duration(self.interval_sec, elapsed)
        self._status.runs += 1
        self._status.last_run_ts = int(time.time())
        self._status.last_cycle_sec = round(elapsed, 6)
        self._status.last_sleep_sec = round(sleep_sec, 6)

        print(
            "[UPDATER][cycle_done] "
            f"run={self._status.runs} published={self._status.last_published} "
            f"target_count={len(self.supported_currencies)} elapsed_sec={elapsed:.3f} sleep_sec={sleep_sec:.3f}",
            flush=True,
        )
        return sleep_sec

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                sleep_sec = self.run_once()
            except Exception as exc:
                self._status.cycle_errors += 1
                print(f"[UPDATER][cycle_error] error={exc!r}", flush=True)
                sleep_sec = float(self.interval_sec)
            if self._stop_event.wait(sleep_sec):
                break

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        if self._stopped:
            raise RuntimeError("price updater cannot be restarted after stop")
        self._thread = threading.Thread(target=self._loop, daemon=True, name="price-updater")
        print(
            f"[UPDATER][start] interval_sec={self.interval_sec} currencies={len(self.supported_currencies)}",
            flush=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 1.0) -> None:
        self._stopped = True
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        print("[UPDATER][stop] thread=price-updater", flush=True)

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def metrics(self) -> dict:
        return self._status.model_dump()
