from __future__ import annotations

import logging
import time
from datetime import timezone, tzinfo

from pool_history.application.dto.fetch_swap_events import FetchAllSwapEventsInput
from pool_history.application.dto.pool_history import GetPoolHistoryInput, GetPoolHistoryOutput
from pool_history.application.ports.pool_history_port import PoolHistoryPort
from pool_history.application.use_cases.fetch_all_swap_events import FetchAllSwapEventsUseCase
from pool_history.domain.exceptions import PoolHistoryInputError, PoolNotFoundError
from pool_history.domain.services.fees import aggregate_by_period, calculate_daily_fees
from pool_history.domain.services.state_reconstruction import DEFAULT_LOOKBACK_DAYS, reconstruct_state
from pool_history.domain.services.time_buckets import (
    PERIOD_TYPES,
    RESOLUTIONS,
    SECONDS_PER_DAY,
    TIME_RANGE_SECONDS,
    time_range_start,
)


logger = logging.getLogger(__name__)


class GetPoolHistoryUseCase:
    def __init__(
        self,
        *,
        pool_history_port: PoolHistoryPort,
        fetch_all_swap_events: FetchAllSwapEventsUseCase,
        swap_max_pages: int = 100,
        swap_page_size: int = 1000,
        default_lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        tz: tzinfo = timezone.utc,
    ):
        self._pool_history_port = pool_history_port
        self._fetch_all_swap_events = fetch_all_swap_events
        self._swap_max_pages = swap_max_pages
        self._swap_page_size = swap_page_size
        self._default_lookback_days = default_lookback_days
        self._tz = tz

    def execute(self, command: GetPoolHistoryInput) -> GetPoolHistoryOutput:
        pool_id = (command.pool_id or "").strip().lower()
        if not pool_id:
            raise PoolHistoryInputError("pool_id is required.")
        lookback_days = command.lookback_days if command.lookback_days is not None else self._default_lookback_days
        if command.time_range is None and (lookback_days < 1 or lookback_days > 365):
            raise PoolHistoryInputError("lookback_days must be between 1 and 365.")
        if command.time_range is not None and command.time_range not in TIME_RANGE_SECONDS:
            raise PoolHistoryInputError(
                f"time_range must be one of: {', '.join(TIME_RANGE_SECONDS)}."
            )
        if command.period not in PERIOD_TYPES:
            raise PoolHistoryInputError("period must be one of: day, week, month.")
        if command.resolution not in RESOLUTIONS:
            raise PoolHistoryInputError("resolution must be one of: hour, day.")

        pool = self._pool_history_port.get_pool(pool_id=pool_id)
        if pool is None:
            raise PoolNotFoundError(f"Pool not found: {pool_id}")

        now = command.now if command.now is not None else int(time.time())
        if command.time_range is not None:
            start_time = time_range_start(command.time_range, now=now)
        else:
            start_time = max(0, now - lookback_days * SECONDS_PER_DAY)

        liquidity_events = self._pool_history_port.list_modify_liquidity_events(
            pool_id=pool_id,
            start_time=start_time,
        )
        swaps = self._fetch_all_swap_events.execute(
            FetchAllSwapEventsInput(
                pool_id=pool_id,
                start_time=start_time,
                max_pages=self._swap_max_pages,
                page_size=self._swap_page_size,
                on_progress=command.on_progress,
                cancel_event=command.cancel_event,
            )
        )

        series = reconstruct_state(
            liquidity_events,
            swaps.events,
            pool,
            now=now,
            start_time=start_time,
            resolution=command.resolution,
            tz=self._tz,
        )

        fees = []
        try:
            daily = calculate_daily_fees(swaps.events, pool.fee_tier, tz=self._tz)
        except ValueError:
            logger.warning("get_pool_history: invalid_fee_tier pool=%s fee_tier=%r", pool_id, pool.fee_tier)
        else:
            fees = aggregate_by_period(daily, command.period, tz=self._tz)

        logger.info(
            "get_pool_history: built pool=%s points=%s fee_periods=%s liquidity_events=%s swaps=%s truncated=%s",
            pool_id,
            len(series),
            len(fees),
            len(liquidity_events),
            len(swaps.events),
            swaps.truncated,
        )
        return GetPoolHistoryOutput(
            pool=pool,
            series=series,
            fees=fees,
            liquidity_event_count=len(liquidity_events),
            swap_event_count=len(swaps.events),
            swaps_truncated=swaps.truncated,
        )
