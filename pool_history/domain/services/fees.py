from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import timezone, tzinfo
from decimal import Decimal

from pool_history.domain.entities.events import SwapEvent
from pool_history.domain.entities.time_series import PeriodAggregate
from pool_history.domain.services.time_buckets import (
    PERIOD_TYPES,
    PeriodType,
    Resolution,
    bucket_timestamp,
    period_start,
)
from pool_history.domain.services.univ3_math import fee_rate_from_tier, parse_decimal, parse_timestamp


logger = logging.getLogger(__name__)


def calculate_fees_by_bucket(
    swap_events: Iterable[SwapEvent] | None,
    fee_tier: int | str,
    *,
    resolution: Resolution = "day",
    tz: tzinfo = timezone.utc,
) -> list[PeriodAggregate]:
    """Sum swap volume and fee revenue per calendar bucket.

    Only buckets that contain at least one valid swap are returned. Swaps with a
    zero/unparsable timestamp or amount are skipped.
    """
    if not swap_events:
        return []

    fee_rate = fee_rate_from_tier(fee_tier)
    fees: dict[int, Decimal] = {}
    volumes: dict[int, Decimal] = {}
    counts: dict[int, int] = {}
    skipped = 0

    for swap in swap_events:
        timestamp = parse_timestamp(swap.timestamp)
        amount_usd = parse_decimal(swap.amount_usd)
        if timestamp <= 0 or amount_usd is None or amount_usd == 0:
            skipped += 1
            continue

        volume = abs(amount_usd)
        key = bucket_timestamp(timestamp, resolution=resolution, tz=tz)
        fees[key] = fees.get(key, Decimal("0")) + volume * fee_rate
        volumes[key] = volumes.get(key, Decimal("0")) + volume
        counts[key] = counts.get(key, 0) + 1

    if skipped:
        logger.debug("fees: skipped_malformed_swaps count=%s", skipped)

    return [
        PeriodAggregate(
            timestamp=key,
            fee_usd=fees[key],
            volume_usd=volumes[key],
            count=counts[key],
        )
        for key in sorted(counts)
    ]


def calculate_daily_fees(
    swap_events: Iterable[SwapEvent] | None,
    fee_tier: int | str,
    *,
    tz: tzinfo = timezone.utc,
) -> list[PeriodAggregate]:
    return calculate_fees_by_bucket(swap_events, fee_tier, resolution="day", tz=tz)


def calculate_daily_fees_from_batches(
    swap_event_batches: Iterable[Iterable[SwapEvent]],
    fee_tier: int | str,
    *,
    tz: tzinfo = timezone.utc,
) -> list[PeriodAggregate]:
    flattened = [swap for batch in swap_event_batches for swap in batch]
    return calculate_daily_fees(flattened, fee_tier, tz=tz)


def aggregate_by_period(
    daily: list[PeriodAggregate],
    period_type: PeriodType | str,
    *,
    tz: tzinfo = timezone.utc,
) -> list[PeriodAggregate]:
    """Re-bucket a daily series into weeks (starting Monday) or months."""
    if period_type not in PERIOD_TYPES:
        raise ValueError(f"Unsupported period type: {period_type}")
    if not daily:
        return []
    if period_type == "day":
        return list(daily)

    fees: dict[int, Decimal] = {}
    volumes: dict[int, Decimal] = {}
    counts: dict[int, int] = {}
    for row in daily:
        key = int(period_start(row.timestamp, period_type, tz=tz).timestamp())
        fees[key] = fees.get(key, Decimal("0")) + row.fee_usd
        volumes[key] = volumes.get(key, Decimal("0")) + row.volume_usd
        counts[key] = counts.get(key, 0) + row.count

    return [
        PeriodAggregate(
            timestamp=key,
            fee_usd=fees[key],
            volume_usd=volumes[key],
            count=counts[key],
        )
        for key in sorted(counts)
    ]
