from __future__ import annotations

from decimal import Decimal
import math

import pytest

from pool_history.domain.services.univ3_math import (
    MAX_TIMESTAMP,
    align_tick_floor,
    fee_rate_from_tier,
    fee_tier_to_percent,
    get_amount0,
    get_amount1,
    parse_decimal,
    parse_int,
    parse_timestamp,
    price_to_tick,
    scale_liquidity_for_display,
    sqrt_price_x96_to_price,
    tick_to_price0,
    tick_to_price1,
    to_big_int,
)


def test_tick_to_price_at_zero_is_one():
    assert tick_to_price0(0) == 1.0
    assert tick_to_price1(0) == 1.0


def test_tick_to_price1_is_reciprocal():
    assert tick_to_price1(6931) == pytest.approx(1.0 / tick_to_price0(6931))
    assert tick_to_price0(6931) == pytest.approx(2.0, rel=1e-3)


def test_extreme_ticks_do_not_raise():
    assert math.isinf(tick_to_price0(10_000_000))
    assert tick_to_price1(10_000_000) == 0.0
    assert tick_to_price0(-10_000_000) == 0.0
    assert math.isinf(tick_to_price1(-10_000_000))


def test_price_to_tick_floors():
    assert price_to_tick(1.0) == 0
    assert price_to_tick(2.0) == 6931
    with pytest.raises(ValueError):
        price_to_tick(0)


def test_align_tick_floor_handles_negative_ticks():
    assert align_tick_floor(125, 60) == 120
    assert align_tick_floor(-61, 60) == -120
    assert align_tick_floor(-60, 60) == -60
    with pytest.raises(ValueError):
        align_tick_floor(10, 0)


def test_sqrt_price_x96_to_price():
    assert sqrt_price_x96_to_price(2**96) == Decimal(1)
    assert sqrt_price_x96_to_price(2**97) == Decimal(4)
    assert sqrt_price_x96_to_price(2**96, 18, 6) == Decimal(10) ** 12
    with pytest.raises(ValueError):
        sqrt_price_x96_to_price(0)


def test_range_amounts_are_single_sided_outside_range():
    liquidity = 1_000_000
    assert get_amount0(tick_lower=-60, tick_upper=60, current_tick=60, liquidity=liquidity) == 0.0
    assert get_amount1(tick_lower=-60, tick_upper=60, current_tick=-60, liquidity=liquidity) == 0.0
    assert get_amount0(tick_lower=-60, tick_upper=60, current_tick=-120, liquidity=liquidity) > 0
    assert get_amount1(tick_lower=-60, tick_upper=60, current_tick=120, liquidity=liquidity) > 0

    in_range0 = get_amount0(tick_lower=-60, tick_upper=60, current_tick=0, liquidity=liquidity)
    in_range1 = get_amount1(tick_lower=-60, tick_upper=60, current_tick=0, liquidity=liquidity)
    assert in_range0 == pytest.approx(in_range1, rel=1e-6)


class TestToBigInt:
    def test_integer_strings_are_exact(self):
        assert to_big_int("123") == (123, True)
        assert to_big_int("-42") == (-42, True)
        huge = "340282366920938463463374607431768211455"
        assert to_big_int(huge) == (int(huge), True)

    def test_integral_scientific_notation_stays_exact(self):
        assert to_big_int("1e3") == (1000, True)
        assert to_big_int(Decimal("5.000")) == (5, True)

    def test_fractional_value_falls_back_to_float(self, caplog: pytest.LogCaptureFixture):
        with caplog.at_level("WARNING"):
            value, exact = to_big_int("1000.5")
        assert value == 1000.5
        assert exact is False
        assert "precision_fallback" in caplog.text

    def test_native_float_is_flagged(self):
        assert to_big_int(1.5) == (1.5, False)

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", True, "nan", float("inf")])
    def test_unusable_values_raise(self, value):
        with pytest.raises(ValueError):
            to_big_int(value)


def test_parse_timestamp_returns_zero_for_bad_input():
    assert parse_timestamp("1700000000") == 1700000000
    assert parse_timestamp("1700000000.0") == 1700000000
    assert parse_timestamp(None) == 0
    assert parse_timestamp("") == 0
    assert parse_timestamp("soon") == 0


def test_parse_timestamp_rejects_values_outside_calendar_range():
    assert parse_timestamp(1_700_000_000_000) == 0
    assert parse_timestamp("1700000000000") == 0
    assert parse_timestamp("1.7e12") == 0
    assert parse_timestamp(-5) == 0
    assert parse_timestamp(MAX_TIMESTAMP) == MAX_TIMESTAMP


def test_parse_decimal_rejects_non_finite():
    assert parse_decimal("12.50") == Decimal("12.50")
    assert parse_decimal("NaN") is None
    assert parse_decimal("Infinity") is None
    assert parse_decimal("x") is None
    assert parse_decimal(None) is None


def test_parse_int_uses_default():
    assert parse_int("-887220", 0) == -887220
    assert parse_int("60.0", 0) == 60
    assert parse_int("x", 7) == 7
    assert parse_int(None, None) is None


def test_fee_tier_conversions():
    assert fee_rate_from_tier("3000") == Decimal("0.003")
    assert fee_rate_from_tier(500) == Decimal("0.0005")
    assert fee_tier_to_percent("3000") == Decimal("0.3")
    assert fee_tier_to_percent("100") == Decimal("0.01")
    with pytest.raises(ValueError):
        fee_rate_from_tier("-1")
    with pytest.raises(ValueError):
        fee_tier_to_percent("abc")


def test_scale_liquidity_for_display():
    assert scale_liquidity_for_display(2_000_000) == 2.0
    assert scale_liquidity_for_display(10**30) == pytest.approx(1e24)
    assert scale_liquidity_for_display(1500.0) == pytest.approx(0.0015)
