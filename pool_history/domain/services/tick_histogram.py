from __future__ import annotations

import logging
from bisect import bisect_right
from collections.abc import Iterable

from pool_history.domain.entities.pool import LiquidityPosition, PoolSnapshot
from pool_history.domain.entities.tick_histogram import TickNode
from pool_history.domain.services.univ3_math import (
    align_tick_floor,
    parse_int,
    tick_to_price0,
    tick_to_price1,
    to_big_int,
)


DEFAULT_TICK_SPACING = 60
DEFAULT_SCAFFOLD_HALF_WIDTH = 50

logger = logging.getLogger(__name__)


def build_tick_histogram(
    positions: Iterable[LiquidityPosition] | None,
    pool: PoolSnapshot,
    *,
    scaffold_half_width: int = DEFAULT_SCAFFOLD_HALF_WIDTH,
) -> list[TickNode]:
    """Turn open positions into a tick-ordered net/gross liquidity table.

    Each position adds its liquidity at ``tick_lower`` and removes it at
    ``tick_upper``; ``liquidity_active`` is the running sum of net liquidity in
    tick order. Without any usable position a zero-liquidity scaffold of
    ``2 * scaffold_half_width + 1`` ticks around the current tick is returned.
    """
    net: dict[int, int | float] = {}
    gross: dict[int, int | float] = {}
    approximate: set[int] = set()
    skipped = 0

    for position in positions or []:
        try:
            liquidity, exact = to_big_int(position.liquidity)
        except ValueError:
            skipped += 1
            continue
        if liquidity == 0:
            continue
        tick_lower = parse_int(position.tick_lower, None)
        tick_upper = parse_int(position.tick_upper, None)
        if tick_lower is None or tick_upper is None:
            skipped += 1
            continue

        net[tick_lower] = net.get(tick_lower, 0) + liquidity
        gross[tick_lower] = gross.get(tick_lower, 0) + liquidity
        net[tick_upper] = net.get(tick_upper, 0) - liquidity
        gross[tick_upper] = gross.get(tick_upper, 0) + liquidity
        if not exact:
            approximate.update((tick_lower, tick_upper))

    if skipped:
        logger.debug("tick_histogram: skipped_malformed_positions pool=%s count=%s", pool.id, skipped)

    if not net:
        return build_empty_scaffold(pool, half_width=scaffold_half_width)

    nodes: list[TickNode] = []
    running: int | float = 0
    for tick_idx in sorted(net):
        running += net[tick_idx]
        nodes.append(
            TickNode(
                tick_idx=tick_idx,
                liquidity_net=net[tick_idx],
                liquidity_gross=gross[tick_idx],
                price0=tick_to_price0(tick_idx),
                price1=tick_to_price1(tick_idx),
                liquidity_active=running,
                approximate=tick_idx in approximate,
            )
        )
    return nodes


def build_empty_scaffold(pool: PoolSnapshot, *, half_width: int = DEFAULT_SCAFFOLD_HALF_WIDTH) -> list[TickNode]:
    current_tick = parse_int(pool.tick, 0)
    tick_spacing = parse_int(pool.tick_spacing, DEFAULT_TICK_SPACING)
    if tick_spacing <= 0:
        tick_spacing = DEFAULT_TICK_SPACING
    center = align_tick_floor(current_tick, tick_spacing)
    return [
        TickNode(
            tick_idx=tick_idx,
            liquidity_net=0,
            liquidity_gross=0,
            price0=tick_to_price0(tick_idx),
            price1=tick_to_price1(tick_idx),
            liquidity_active=0,
        )
        for tick_idx in (center + offset * tick_spacing for offset in range(-half_width, half_width + 1))
    ]


def active_liquidity_at_tick(nodes: list[TickNode], tick: int) -> int | float:
    if not nodes:
        return 0
    idx = bisect_right([node.tick_idx for node in nodes], tick) - 1
    if idx < 0:
        return 0
    return nodes[idx].liquidity_active


def calculate_range_liquidity(nodes: list[TickNode], tick_lower: int, tick_upper: int) -> int | float:
    return sum(
        (node.liquidity_net for node in nodes if tick_lower <= node.tick_idx <= tick_upper),
        0,
    )


def group_ticks_by_spacing(nodes: list[TickNode], tick_spacing: int) -> list[TickNode]:
    """Fold nodes onto the ``tick_spacing`` grid and recompute the active curve."""
    net: dict[int, int | float] = {}
    gross: dict[int, int | float] = {}
    approximate: set[int] = set()
    for node in nodes:
        spaced = align_tick_floor(node.tick_idx, tick_spacing)
        net[spaced] = net.get(spaced, 0) + node.liquidity_net
        gross[spaced] = gross.get(spaced, 0) + node.liquidity_gross
        if node.approximate:
            approximate.add(spaced)

    grouped: list[TickNode] = []
    running: int | float = 0
    for tick_idx in sorted(net):
        running += net[tick_idx]
        grouped.append(
            TickNode(
                tick_idx=tick_idx,
                liquidity_net=net[tick_idx],
                liquidity_gross=gross[tick_idx],
                price0=tick_to_price0(tick_idx),
                price1=tick_to_price1(tick_idx),
                liquidity_active=running,
                approximate=tick_idx in approximate,
            )
        )
    return grouped
