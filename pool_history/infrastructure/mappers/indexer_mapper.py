from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pool_history.domain.entities.events import ModifyLiquidityEvent, SwapEvent
from pool_history.domain.entities.pool import LiquidityPosition, PoolSnapshot, Token
from pool_history.domain.services.univ3_math import parse_int


def _text(row: Mapping[str, Any], key: str, default: str = "0") -> str:
    value = row.get(key)
    return str(value) if value is not None else default


def _optional_text(row: Mapping[str, Any], key: str) -> str | None:
    value = row.get(key)
    return str(value) if value is not None else None


def _reference_id(row: Mapping[str, Any], key: str) -> str | None:
    value = row.get(key)
    if isinstance(value, Mapping):
        value = value.get("id")
    return str(value) if value is not None else None


def map_row_to_swap_event(row: Mapping[str, Any]) -> SwapEvent:
    return SwapEvent(
        id=_text(row, "id", ""),
        timestamp=_text(row, "timestamp"),
        sender=_text(row, "sender", ""),
        origin=_text(row, "origin", ""),
        amount0=_text(row, "amount0"),
        amount1=_text(row, "amount1"),
        amount_usd=_text(row, "amountUSD"),
        sqrt_price_x96=_optional_text(row, "sqrtPriceX96"),
        tick=_optional_text(row, "tick"),
        transaction=_text(row, "transaction", ""),
        log_index=_optional_text(row, "logIndex"),
    )


def map_row_to_modify_liquidity_event(row: Mapping[str, Any]) -> ModifyLiquidityEvent:
    return ModifyLiquidityEvent(
        id=_text(row, "id", ""),
        timestamp=_text(row, "timestamp"),
        sender=_text(row, "sender", ""),
        origin=_optional_text(row, "origin"),
        liquidity_delta=_optional_text(row, "liquidityDelta"),
        amount0=_text(row, "amount0"),
        amount1=_text(row, "amount1"),
        amount_usd=_text(row, "amountUSD"),
        tick_lower=_text(row, "tickLower"),
        tick_upper=_text(row, "tickUpper"),
        transaction=_text(row, "transaction", ""),
        log_index=_optional_text(row, "logIndex"),
    )


def map_row_to_pool_snapshot(row: Mapping[str, Any]) -> PoolSnapshot:
    return PoolSnapshot(
        id=_text(row, "id", ""),
        liquidity=_text(row, "liquidity"),
        sqrt_price=_text(row, "sqrtPrice"),
        tick=_optional_text(row, "tick"),
        fee_tier=_text(row, "feeTier"),
        tick_spacing=_text(row, "tickSpacing", "60"),
        token0_price=_text(row, "token0Price"),
        token1_price=_text(row, "token1Price"),
        total_value_locked_usd=_text(row, "totalValueLockedUSD"),
        total_value_locked_token0=_text(row, "totalValueLockedToken0"),
        total_value_locked_token1=_text(row, "totalValueLockedToken1"),
        token0=_reference_id(row, "token0"),
        token1=_reference_id(row, "token1"),
    )


def map_row_to_liquidity_position(row: Mapping[str, Any]) -> LiquidityPosition:
    return LiquidityPosition(
        id=_text(row, "id", ""),
        tick_lower=_text(row, "tickLower"),
        tick_upper=_text(row, "tickUpper"),
        liquidity=_text(row, "liquidity"),
        owner=_optional_text(row, "owner"),
    )


def map_row_to_token(row: Mapping[str, Any]) -> Token:
    return Token(
        id=_text(row, "id", ""),
        symbol=_text(row, "symbol", ""),
        name=_text(row, "name", ""),
        decimals=parse_int(row.get("decimals"), 18),
    )
