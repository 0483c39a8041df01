from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime, timezone, tzinfo
from decimal import Decimal

from pool_history.domain.entities.events import ModifyLiquidityEvent, SwapEvent
from pool_history.domain.entities.pool import PoolSnapshot
from pool_history.domain.entities.time_series import TimeSeriesPoint
from pool_history.domain.services.fees import calculate_fees_by_bucket
from pool_history.domain.services.time_buckets import (
    SECONDS_PER_DAY,
    Resolution,
    bucket_start,
    iter_buckets,
)
from pool_history.domain.services.univ3_math import (
    fee_rate_from_tier,
    parse_decimal,
    parse_int,
    parse_timestamp,
    scale_liquidity_for_display,
    to_big_int,
)


DEFAULT_LOOKBACK_DAYS = 90
ZERO = Decimal("0")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplayState:
    """Running pool totals threaded through the event replay."""

    liquidity: int
    token0_amount: Decimal
    token1_amount: Decimal
    tvl_usd: Decimal
    tick: int
    sqrt_price: int
    approximate: bool = False


def initial_replay_state(pool: PoolSnapshot) -> ReplayState:
    return ReplayState(
        liquidity=0,
        token0_amount=ZERO,
        token1_amount=ZERO,
        tvl_usd=ZERO,
        tick=parse_int(pool.tick, 0),
        sqrt_price=_parse_sqrt_price(pool.sqrt_price, default=0),
    )


def apply_liquidity_event(
    state: ReplayState,
    event: ModifyLiquidityEvent,
    *,
    token0_price: Decimal,
    token1_price: Decimal,
) -> ReplayState:
    if not event.liquidity_delta:
        return state
    try:
        delta, exact = to_big_int(event.liquidity_delta)
    except ValueError:
        logger.debug(
            "state_reconstruction: skipped_liquidity_event id=%s liquidity_delta=%r",
            event.id,
            event.liquidity_delta,
        )
        return state

    delta = int(delta)
    amount0 = abs(parse_decimal(event.amount0) or ZERO)
    amount1 = abs(parse_decimal(event.amount1) or ZERO)
    if delta < 0:
        token0_amount = max(ZERO, state.token0_amount - amount0)
        token1_amount = max(ZERO, state.token1_amount - amount1)
    else:
        token0_amount = state.token0_amount + amount0
        token1_amount = state.token1_amount + amount1

    # TVL is priced with the pool's current token prices, not the prices at event time.
    tvl_usd = max(ZERO, token0_amount * token0_price + token1_amount * token1_price)
    return replace(
        state,
        liquidity=state.liquidity + delta,
        token0_amount=token0_amount,
        token1_amount=token1_amount,
        tvl_usd=tvl_usd,
        approximate=state.approximate or not exact,
    )


def apply_swap(state: ReplayState, swap: SwapEvent) -> ReplayState:
    tick = state.tick
    if swap.tick not in (None, ""):
        tick = parse_int(swap.tick, state.tick)
    sqrt_price = state.sqrt_price
    if swap.sqrt_price_x96 not in (None, ""):
        sqrt_price = _parse_sqrt_price(swap.sqrt_price_x96, default=state.sqrt_price)
    if tick == state.tick and sqrt_price == state.sqrt_price:
        return state
    return replace(state, tick=tick, sqrt_price=sqrt_price)


def reconstruct_state(
    liquidity_events: Iterable[ModifyLiquidityEvent] | None,
    swap_events: Iterable[SwapEvent] | None,
    pool: PoolSnapshot,
    *,
    now: int | None = None,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    start_time: int | None = None,
    resolution: Resolution = "day",
    tz: tzinfo = timezone.utc,
) -> list[TimeSeriesPoint]:
    """Replay liquidity and swap events into a gap-free ascending series.

    The series starts at the lookback window start and runs through the bucket
    containing ``now``. Each bucket carries the state after the last event
    inside it; buckets without events repeat the previous bucket's state with
    zero fees/volume. Without any event in the window a single point built from
    the pool snapshot is returned.

    ``start_time`` overrides ``lookback_days``; ``0`` means the whole history,
    in which case the series starts at the earliest event instead of the epoch.
    Events stamped after ``now`` are ignored.
    """
    now_ts = int(time.time()) if now is None else now
    if start_time is None:
        if lookback_days < 1:
            raise ValueError("lookback_days must be >= 1.")
        start_ts = now_ts - lookback_days * SECONDS_PER_DAY
    else:
        if start_time < 0 or start_time > now_ts:
            raise ValueError("start_time must be between 0 and now.")
        start_ts = start_time
    relevant_liquidity = _filter_window(liquidity_events, start_ts, now_ts)
    relevant_swaps = _filter_window(swap_events, start_ts, now_ts)

    if not relevant_liquidity and not relevant_swaps:
        logger.info(
            "state_reconstruction: no_events_in_window pool=%s start_ts=%s now=%s",
            pool.id,
            start_ts,
            now_ts,
        )
        return [_point_from_pool(pool, bucket_start(now_ts, resolution=resolution, tz=tz))]

    token0_price = parse_decimal(pool.token0_price) or ZERO
    token1_price = parse_decimal(pool.token1_price) or ZERO

    state = initial_replay_state(pool)
    if start_ts == 0:
        start_ts = min(
            parse_timestamp(event.timestamp) for event in [*relevant_liquidity, *relevant_swaps]
        )
    window_start = bucket_start(start_ts, resolution=resolution, tz=tz)
    points: dict[int, TimeSeriesPoint] = {
        int(window_start.timestamp()): _point_from_state(state, window_start),
    }

    for timestamp, event in _merge_chronologically(relevant_liquidity, relevant_swaps):
        if isinstance(event, ModifyLiquidityEvent):
            state = apply_liquidity_event(
                state,
                event,
                token0_price=token0_price,
                token1_price=token1_price,
            )
        else:
            state = apply_swap(state, event)
        bucket = bucket_start(timestamp, resolution=resolution, tz=tz)
        points[int(bucket.timestamp())] = _point_from_state(state, bucket)

    _attach_fees(points, relevant_swaps, pool=pool, resolution=resolution, tz=tz)
    series = fill_missing_buckets(
        points,
        until=bucket_start(now_ts, resolution=resolution, tz=tz),
        resolution=resolution,
        tz=tz,
    )
    logger.info(
        "state_reconstruction: series_built pool=%s liquidity_events=%s swaps=%s points=%s approximate=%s",
        pool.id,
        len(relevant_liquidity),
        len(relevant_swaps),
        len(series),
        state.approximate,
    )
    return series


def fill_missing_buckets(
    points: dict[int, TimeSeriesPoint],
    *,
    until: datetime | None = None,
    resolution: Resolution = "day",
    tz: tzinfo = timezone.utc,
) -> list[TimeSeriesPoint]:
    if not points:
        return []

    ordered_keys = sorted(points)
    first = points[ordered_keys[0]].date
    last = points[ordered_keys[-1]].date
    if until is not None and until > last:
        last = until

    filled: list[TimeSeriesPoint] = []
    previous = points[ordered_keys[0]]
    for bucket in iter_buckets(first, last, resolution=resolution, tz=tz):
        key = int(bucket.timestamp())
        point = points.get(key)
        if point is None:
            point = replace(
                previous,
                date=bucket,
                timestamp=key,
                daily_fee_usd=ZERO,
                volume_usd=ZERO,
                swap_count=0,
            )
        filled.append(point)
        previous = point
    return filled


def _attach_fees(
    points: dict[int, TimeSeriesPoint],
    swaps: list[SwapEvent],
    *,
    pool: PoolSnapshot,
    resolution: Resolution,
    tz: tzinfo,
) -> None:
    fee_tier = pool.fee_tier
    try:
        fee_rate_from_tier(fee_tier)
    except ValueError:
        logger.warning("state_reconstruction: invalid_fee_tier pool=%s fee_tier=%r", pool.id, fee_tier)
        fee_tier = "0"
    aggregates = {
        row.timestamp: row
        for row in calculate_fees_by_bucket(swaps, fee_tier, resolution=resolution, tz=tz)
    }
    for key, point in points.items():
        row = aggregates.get(key)
        if row is None:
            continue
        points[key] = replace(
            point,
            daily_fee_usd=row.fee_usd,
            volume_usd=row.volume_usd,
            swap_count=row.count,
        )


def _filter_window(events, start_ts: int, end_ts: int) -> list:
    if not events:
        return []
    kept = []
    dropped = 0
    for event in events:
        timestamp = parse_timestamp(event.timestamp)
        if timestamp <= 0 or timestamp > end_ts:
            dropped += 1
            continue
        if timestamp >= start_ts:
            kept.append(event)
    if dropped:
        logger.debug("state_reconstruction: skipped_events count=%s", dropped)
    return kept


def _merge_chronologically(
    liquidity_events: list[ModifyLiquidityEvent],
    swap_events: list[SwapEvent],
) -> list[tuple[int, ModifyLiquidityEvent | SwapEvent]]:
    keyed = [
        (parse_timestamp(event.timestamp), parse_int(event.log_index, 0), seq, event)
        for seq, event in enumerate([*liquidity_events, *swap_events])
    ]
    keyed.sort(key=lambda item: item[:3])
    return [(timestamp, event) for timestamp, _, _, event in keyed]


def _point_from_state(state: ReplayState, bucket: datetime) -> TimeSeriesPoint:
    liquidity = max(0, state.liquidity)
    return TimeSeriesPoint(
        date=bucket,
        timestamp=int(bucket.timestamp()),
        liquidity=scale_liquidity_for_display(liquidity),
        liquidity_raw=liquidity,
        tvl_usd=max(ZERO, state.tvl_usd),
        token0_amount=state.token0_amount,
        token1_amount=state.token1_amount,
        tick=state.tick,
        sqrt_price=state.sqrt_price,
        approximate=state.approximate,
    )


def _point_from_pool(pool: PoolSnapshot, bucket: datetime) -> TimeSeriesPoint:
    approximate = False
    try:
        raw_liquidity, exact = to_big_int(pool.liquidity)
        liquidity = max(0, int(raw_liquidity))
        approximate = not exact
    except ValueError:
        liquidity = 0
    return TimeSeriesPoint(
        date=bucket,
        timestamp=int(bucket.timestamp()),
        liquidity=scale_liquidity_for_display(liquidity),
        liquidity_raw=liquidity,
        tvl_usd=max(ZERO, parse_decimal(pool.total_value_locked_usd) or ZERO),
        token0_amount=max(ZERO, parse_decimal(pool.total_value_locked_token0) or ZERO),
        token1_amount=max(ZERO, parse_decimal(pool.total_value_locked_token1) or ZERO),
        tick=parse_int(pool.tick, 0),
        sqrt_price=_parse_sqrt_price(pool.sqrt_price, default=0),
        approximate=approximate,
    )


def _parse_sqrt_price(raw: str | None, *, default: int) -> int:
    try:
        value, _ = to_big_int(raw)
    except ValueError:
        return default
    return int(value)
