from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PoolSnapshot:
    id: str
    liquidity: str
    sqrt_price: str
    tick: str | None
    fee_tier: str
    tick_spacing: str
    token0_price: str
    token1_price: str
    total_value_locked_usd: str
    total_value_locked_token0: str
    total_value_locked_token1: str
    token0: str | None = None
    token1: str | None = None


@dataclass(frozen=True)
class LiquidityPosition:
    id: str
    tick_lower: str
    tick_upper: str
    liquidity: str
    owner: str | None = None


@dataclass(frozen=True)
class Token:
    id: str
    symbol: str
    name: str
    decimals: int
