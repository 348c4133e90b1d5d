from pydantic import BaseModel


class UpdaterStatus(BaseModel):
    state: str = "IDLE"
    runs: int = 0
    last_run_ts: int | None = None
    last_cycle_sec: float | None = None
    last_sleep_sec: float | None = None
    last_published: int = 0
    conversion_errors: int = 0
    cycle_errors: int = 0
