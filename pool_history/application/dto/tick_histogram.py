from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from pool_history.domain.entities.tick_histogram import TickNode


@dataclass(frozen=True)
class GetTickHistogramInput:
    pool_id: str
    positions_limit: int | None = None
    scaffold_half_width: int | None = None


@dataclass(frozen=True)
class GetTickHistogramOutput:
    pool_id: str
    token0_symbol: str | None
    token1_symbol: str | None
    current_tick: int
    tick_spacing: int
    fee_tier_pct: Decimal | None
    position_count: int
    is_scaffold: bool
    ticks: list[TickNode]
