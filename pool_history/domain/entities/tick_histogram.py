from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TickNode:
    tick_idx: int
    liquidity_net: int | float
    liquidity_gross: int | float
    price0: float
    price1: float
    liquidity_active: int | float
    approximate: bool = False
