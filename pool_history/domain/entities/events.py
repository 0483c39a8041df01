from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SwapEvent:
    id: str
    timestamp: str
    sender: str
    origin: str
    amount0: str
    amount1: str
    amount_usd: str
    sqrt_price_x96: str | None
    tick: str | None
    transaction: str
    log_index: str | None = None


@dataclass(frozen=True)
class ModifyLiquidityEvent:
    id: str
    timestamp: str
    sender: str
    origin: str | None
    liquidity_delta: str | None
    amount0: str
    amount1: str
    amount_usd: str
    tick_lower: str
    tick_upper: str
    transaction: str
    log_index: str | None = None
