from __future__ import annotations

import logging
import math
from decimal import Decimal, InvalidOperation


LOG_BASE = math.log(1.0001)
Q96 = Decimal(2**96)
FEE_TIER_DENOMINATOR = Decimal(1_000_000)
FEE_TIER_PERCENT_DENOMINATOR = Decimal(10_000)
LIQUIDITY_DISPLAY_SCALE = Decimal(10) ** 6
# 9999-12-30T23:59:59Z; one day short of the datetime limit so any UTC offset still fits.
MAX_TIMESTAMP = 253_402_214_399

logger = logging.getLogger(__name__)


def tick_to_price0(tick: int | float) -> float:
    try:
        return math.pow(1.0001, float(tick))
    except OverflowError:
        return math.inf


def tick_to_price1(tick: int | float) -> float:
    price0 = tick_to_price0(tick)
    if price0 == 0.0:
        return math.inf
    if math.isinf(price0):
        return 0.0
    return 1.0 / price0


def price_to_tick(price: float) -> int:
    if price <= 0:
        raise ValueError("price must be positive.")
    return math.floor(math.log(price) / LOG_BASE)


def align_tick_floor(tick: int, tick_spacing: int) -> int:
    if tick_spacing <= 0:
        raise ValueError("tick_spacing must be positive.")
    return math.floor(tick / tick_spacing) * tick_spacing


def sqrt_price_x96_to_price(
    sqrt_price_x96: int,
    token0_decimals: int = 0,
    token1_decimals: int = 0,
) -> Decimal:
    if sqrt_price_x96 <= 0:
        raise ValueError("Invalid sqrt_price_x96.")
    sqrt_price = Decimal(sqrt_price_x96) / Q96
    decimal_adjust = Decimal(10) ** Decimal(token0_decimals - token1_decimals)
    return sqrt_price * sqrt_price * decimal_adjust


def get_amount0(*, tick_lower: int, tick_upper: int, current_tick: int, liquidity: int | float) -> float:
    """Token0 held by a range position at ``current_tick``.

    Zero once the price has moved above the range; below the range the whole
    position sits in token0.
    """
    if current_tick >= tick_upper:
        return 0.0
    lower = max(tick_lower, current_tick)
    sqrt_a = math.sqrt(tick_to_price0(lower))
    sqrt_b = math.sqrt(tick_to_price0(tick_upper))
    return float(liquidity) * (1.0 / sqrt_a - 1.0 / sqrt_b)


def get_amount1(*, tick_lower: int, tick_upper: int, current_tick: int, liquidity: int | float) -> float:
    """Token1 held by a range position at ``current_tick``."""
    if current_tick <= tick_lower:
        return 0.0
    upper = min(tick_upper, current_tick)
    sqrt_a = math.sqrt(tick_to_price0(tick_lower))
    sqrt_b = math.sqrt(tick_to_price0(upper))
    return float(liquidity) * (sqrt_b - sqrt_a)


def to_big_int(value: int | str | Decimal | float | None) -> tuple[int | float, bool]:
    """Parse an on-chain integer amount.

    Returns ``(value, exact)``. Values that cannot be represented as an exact
    integer fall back to ``float`` and come back with ``exact=False``; this is
    the only place where that fallback happens. Raises ``ValueError`` when the
    value cannot be read as a number at all.
    """
    if value is None:
        raise ValueError("Missing integer value.")
    if isinstance(value, bool):
        raise ValueError("Unsupported integer value type.")
    if isinstance(value, int):
        return value, True
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError("Integer value must be finite.")
        logger.warning("univ3_math: precision_fallback source=float value=%s", value)
        return value, False

    if isinstance(value, Decimal):
        parsed = value
    else:
        raw = str(value).strip()
        if not raw:
            raise ValueError("Empty integer string.")
        try:
            return int(raw), True
        except ValueError:
            pass
        try:
            parsed = Decimal(raw)
        except InvalidOperation as exc:
            raise ValueError(f"Unparsable integer value: {raw!r}") from exc

    if not parsed.is_finite():
        raise ValueError("Integer value must be finite.")
    if parsed == parsed.to_integral_value():
        return int(parsed), True
    logger.warning("univ3_math: precision_fallback source=decimal value=%s", parsed)
    return float(parsed), False


def parse_timestamp(value: int | str | None) -> int:
    """Unix seconds, or ``0`` for a missing, unparsable or out-of-range value.

    Values past ``MAX_TIMESTAMP`` (e.g. milliseconds) cannot be placed on a
    calendar and are treated like any other malformed timestamp.
    """
    if value is None:
        return 0
    if isinstance(value, int):
        return _bounded_timestamp(value)
    raw = str(value).strip()
    if not raw:
        return 0
    try:
        return _bounded_timestamp(int(raw))
    except ValueError:
        pass
    try:
        parsed = Decimal(raw)
    except InvalidOperation:
        return 0
    if not parsed.is_finite():
        return 0
    return _bounded_timestamp(int(parsed))


def _bounded_timestamp(value: int) -> int:
    if value < 0 or value > MAX_TIMESTAMP:
        return 0
    return value


def parse_decimal(value: int | str | Decimal | None) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    raw = str(value).strip()
    if not raw:
        return None
    try:
        parsed = Decimal(raw)
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def parse_int(value: int | str | None, default: int | None) -> int | None:
    if value is None:
        return default
    raw = str(value).strip()
    try:
        return int(raw)
    except ValueError:
        parsed = parse_decimal(raw)
        if parsed is None:
            return default
        return int(parsed)


def fee_rate_from_tier(fee_tier: int | str) -> Decimal:
    tier = parse_decimal(fee_tier)
    if tier is None or tier < 0:
        raise ValueError(f"Invalid fee tier: {fee_tier!r}")
    return tier / FEE_TIER_DENOMINATOR


def fee_tier_to_percent(fee_tier: int | str) -> Decimal:
    tier = parse_decimal(fee_tier)
    if tier is None or tier < 0:
        raise ValueError(f"Invalid fee tier: {fee_tier!r}")
    return tier / FEE_TIER_PERCENT_DENOMINATOR


def scale_liquidity_for_display(liquidity: int | float) -> float:
    if isinstance(liquidity, float):
        return liquidity / float(LIQUIDITY_DISPLAY_SCALE)
    return float(Decimal(liquidity) / LIQUIDITY_DISPLAY_SCALE)
