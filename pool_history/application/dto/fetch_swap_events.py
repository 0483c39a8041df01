from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from threading import Event

from pool_history.domain.entities.events import SwapEvent


ProgressCallback = Callable[[float, str], None]


@dataclass(frozen=True)
class FetchAllSwapEventsInput:
    pool_id: str
    start_time: int
    max_pages: int = 100
    page_size: int = 1000
    on_progress: ProgressCallback | None = None
    cancel_event: Event | None = None


@dataclass(frozen=True)
class FetchSwapEventsByDateRangeInput:
    pool_id: str
    start_date: datetime
    end_date: datetime | None = None
    max_pages: int = 100
    page_size: int = 1000
    on_progress: ProgressCallback | None = None
    cancel_event: Event | None = None


@dataclass(frozen=True)
class FetchAllSwapEventsOutput:
    events: list[SwapEvent]
    pages_fetched: int
    truncated: bool
    stalled: bool
    duplicates_skipped: int
