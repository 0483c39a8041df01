from __future__ import annotations

import logging
import time

from pool_history.application.dto.fetch_swap_events import (
    FetchAllSwapEventsInput,
    FetchAllSwapEventsOutput,
    FetchSwapEventsByDateRangeInput,
    ProgressCallback,
)
from pool_history.application.ports.swap_events_port import SwapEventsPort
from pool_history.domain.entities.events import SwapEvent
from pool_history.domain.exceptions import (
    PoolHistoryInputError,
    SwapEventsFetchError,
    SwapFetchCancelledError,
)
from pool_history.domain.services.univ3_math import parse_timestamp


DEFAULT_PAGE_DELAY_SECONDS = 0.1
logger = logging.getLogger(__name__)


class FetchAllSwapEventsUseCase:
    """Pages swap events in ascending timestamp order until exhaustion.

    Stops on an empty page, a short page, a page that does not advance past the
    previous one (stall guard) or after ``max_pages`` pages (truncated). Any
    page failure discards the accumulation and raises ``SwapEventsFetchError``.
    """

    def __init__(
        self,
        *,
        swap_events_port: SwapEventsPort,
        page_delay_seconds: float = DEFAULT_PAGE_DELAY_SECONDS,
    ):
        self._swap_events_port = swap_events_port
        self._page_delay_seconds = page_delay_seconds

    def execute(self, command: FetchAllSwapEventsInput) -> FetchAllSwapEventsOutput:
        pool_id = (command.pool_id or "").strip()
        if not pool_id:
            raise PoolHistoryInputError("pool_id is required.")
        if command.page_size < 1:
            raise PoolHistoryInputError("page_size must be >= 1.")
        if command.max_pages < 1:
            raise PoolHistoryInputError("max_pages must be >= 1.")
        if command.start_time < 0:
            raise PoolHistoryInputError("start_time must be >= 0.")

        events: list[SwapEvent] = []
        seen_ids: set[str] = set()
        cursor_time = command.start_time
        last_timestamp: int | None = None
        pages = 0
        truncated = False
        stalled = False
        duplicates = 0

        logger.info(
            "swap_fetcher: start pool=%s start_time=%s max_pages=%s page_size=%s",
            pool_id,
            command.start_time,
            command.max_pages,
            command.page_size,
        )
        _report(command.on_progress, 0.0, "Starting swap fetch")

        while True:
            if command.cancel_event is not None and command.cancel_event.is_set():
                logger.warning("swap_fetcher: cancelled pool=%s pages=%s", pool_id, pages)
                raise SwapFetchCancelledError(f"Swap fetch cancelled after {pages} pages.")

            try:
                rows = self._swap_events_port.list_swap_events(
                    pool_id=pool_id,
                    start_time=cursor_time,
                    limit=command.page_size,
                )
            except (RuntimeError, ValueError) as exc:
                logger.warning(
                    "swap_fetcher: page_failed pool=%s page=%s cursor=%s error=%s",
                    pool_id,
                    pages + 1,
                    cursor_time,
                    exc,
                )
                _report(command.on_progress, 100.0, f"Swap fetch failed: {exc}")
                raise SwapEventsFetchError(
                    f"Swap page request failed: {exc}",
                    pool_id=pool_id,
                    pages_completed=pages,
                ) from exc

            if not rows:
                break

            page_last = max(parse_timestamp(row.timestamp) for row in rows)
            if last_timestamp is not None and page_last <= last_timestamp:
                stalled = True
                logger.warning(
                    "swap_fetcher: pagination_stalled pool=%s page=%s last_timestamp=%s",
                    pool_id,
                    pages + 1,
                    last_timestamp,
                )
                break

            pages += 1
            for row in rows:
                if row.id in seen_ids:
                    duplicates += 1
                    continue
                seen_ids.add(row.id)
                events.append(row)

            last_timestamp = page_last
            cursor_time = page_last + 1

            logger.info(
                "swap_fetcher: page_fetched pool=%s page=%s rows=%s total=%s next_cursor=%s",
                pool_id,
                pages,
                len(rows),
                len(events),
                cursor_time,
            )
            _report(
                command.on_progress,
                min(100.0, pages / command.max_pages * 100),
                f"Fetched page {pages}/{command.max_pages} ({len(events)} swaps)",
            )

            if len(rows) < command.page_size:
                break
            if pages >= command.max_pages:
                truncated = True
                logger.warning(
                    "swap_fetcher: page_limit_reached pool=%s max_pages=%s total=%s",
                    pool_id,
                    command.max_pages,
                    len(events),
                )
                break
            if self._page_delay_seconds > 0:
                time.sleep(self._page_delay_seconds)

        events.sort(key=lambda row: parse_timestamp(row.timestamp))
        logger.info(
            "swap_fetcher: done pool=%s total=%s pages=%s truncated=%s stalled=%s duplicates=%s",
            pool_id,
            len(events),
            pages,
            truncated,
            stalled,
            duplicates,
        )
        _report(command.on_progress, 100.0, f"Fetch complete: {len(events)} swaps")
        return FetchAllSwapEventsOutput(
            events=events,
            pages_fetched=pages,
            truncated=truncated,
            stalled=stalled,
            duplicates_skipped=duplicates,
        )


class FetchSwapEventsByDateRangeUseCase:
    def __init__(self, *, fetch_all_swap_events: FetchAllSwapEventsUseCase):
        self._fetch_all_swap_events = fetch_all_swap_events

    def execute(self, command: FetchSwapEventsByDateRangeInput) -> FetchAllSwapEventsOutput:
        start_time = int(command.start_date.timestamp())
        end_time = int(command.end_date.timestamp()) if command.end_date is not None else int(time.time())
        if end_time < start_time:
            raise PoolHistoryInputError("end_date must not be before start_date.")

        output = self._fetch_all_swap_events.execute(
            FetchAllSwapEventsInput(
                pool_id=command.pool_id,
                start_time=start_time,
                max_pages=command.max_pages,
                page_size=command.page_size,
                on_progress=command.on_progress,
                cancel_event=command.cancel_event,
            )
        )
        in_range = [row for row in output.events if parse_timestamp(row.timestamp) <= end_time]
        return FetchAllSwapEventsOutput(
            events=in_range,
            pages_fetched=output.pages_fetched,
            truncated=output.truncated,
            stalled=output.stalled,
            duplicates_skipped=output.duplicates_skipped,
        )


def _report(callback: ProgressCallback | None, percent: float, message: str) -> None:
    if callback is not None:
        callback(percent, message)
