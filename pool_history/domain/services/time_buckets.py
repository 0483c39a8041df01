from __future__ import annotations

from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Iterator, Literal


Resolution = Literal["hour", "day"]
PeriodType = Literal["day", "week", "month"]

RESOLUTIONS = {"hour", "day"}
PERIOD_TYPES = {"day", "week", "month"}
SECONDS_PER_DAY = 24 * 60 * 60


def bucket_start(timestamp: int, *, resolution: Resolution = "day", tz: tzinfo = timezone.utc) -> datetime:
    local = datetime.fromtimestamp(timestamp, tz)
    if resolution == "day":
        return datetime.combine(local.date(), time(0, 0), tzinfo=tz)
    if resolution == "hour":
        return local.replace(minute=0, second=0, microsecond=0)
    raise ValueError(f"Unsupported resolution: {resolution}")


def bucket_timestamp(timestamp: int, *, resolution: Resolution = "day", tz: tzinfo = timezone.utc) -> int:
    return int(bucket_start(timestamp, resolution=resolution, tz=tz).timestamp())


def next_bucket(start: datetime, *, resolution: Resolution = "day", tz: tzinfo = timezone.utc) -> datetime:
    if resolution == "day":
        return datetime.combine(start.date() + timedelta(days=1), time(0, 0), tzinfo=tz)
    if resolution == "hour":
        return bucket_start(int(start.timestamp()) + 3600, resolution="hour", tz=tz)
    raise ValueError(f"Unsupported resolution: {resolution}")


def iter_buckets(
    first: datetime,
    last: datetime,
    *,
    resolution: Resolution = "day",
    tz: tzinfo = timezone.utc,
) -> Iterator[datetime]:
    current = first
    while current <= last:
        yield current
        current = next_bucket(current, resolution=resolution, tz=tz)


def period_start(timestamp: int, period_type: PeriodType, *, tz: tzinfo = timezone.utc) -> datetime:
    """Start of the day, week (Monday) or month containing ``timestamp``."""
    day = bucket_start(timestamp, resolution="day", tz=tz).date()
    if period_type == "day":
        start_date = day
    elif period_type == "week":
        start_date = day - timedelta(days=day.weekday())
    elif period_type == "month":
        start_date = day.replace(day=1)
    else:
        raise ValueError(f"Unsupported period type: {period_type}")
    return datetime.combine(start_date, time(0, 0), tzinfo=tz)


TIME_RANGE_SECONDS: dict[str, int | None] = {
    "1h": 3600,
    "24h": SECONDS_PER_DAY,
    "7d": 7 * SECONDS_PER_DAY,
    "30d": 30 * SECONDS_PER_DAY,
    "90d": 90 * SECONDS_PER_DAY,
    "180d": 180 * SECONDS_PER_DAY,
    "1y": 365 * SECONDS_PER_DAY,
    "all": None,
}


def time_range_start(time_range: str, *, now: int) -> int:
    """Window start for a named range; ``0`` for ``"all"``."""
    if time_range not in TIME_RANGE_SECONDS:
        raise ValueError(f"Unsupported time range: {time_range}")
    seconds = TIME_RANGE_SECONDS[time_range]
    if seconds is None:
        return 0
    return max(0, now - seconds)
