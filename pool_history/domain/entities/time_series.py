from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class TimeSeriesPoint:
    date: datetime
    timestamp: int
    liquidity: float
    liquidity_raw: int
    tvl_usd: Decimal
    token0_amount: Decimal
    token1_amount: Decimal
    tick: int
    sqrt_price: int
    daily_fee_usd: Decimal = Decimal("0")
    volume_usd: Decimal = Decimal("0")
    swap_count: int = 0
    approximate: bool = False


@dataclass(frozen=True)
class PeriodAggregate:
    timestamp: int
    fee_usd: Decimal
    volume_usd: Decimal
    count: int
