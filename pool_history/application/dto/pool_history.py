from __future__ import annotations

from dataclasses import dataclass
from threading import Event

from pool_history.application.dto.fetch_swap_events import ProgressCallback
from pool_history.domain.entities.pool import PoolSnapshot
from pool_history.domain.entities.time_series import PeriodAggregate, TimeSeriesPoint


@dataclass(frozen=True)
class GetPoolHistoryInput:
    pool_id: str
    lookback_days: int | None = None
    time_range: str | None = None
    period: str = "day"
    resolution: str = "day"
    now: int | None = None
    on_progress: ProgressCallback | None = None
    cancel_event: Event | None = None


@dataclass(frozen=True)
class GetPoolHistoryOutput:
    pool: PoolSnapshot
    series: list[TimeSeriesPoint]
    fees: list[PeriodAggregate]
    liquidity_event_count: int
    swap_event_count: int
    swaps_truncated: bool
