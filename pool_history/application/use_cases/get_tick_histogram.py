from __future__ import annotations

from pool_history.application.dto.tick_histogram import GetTickHistogramInput, GetTickHistogramOutput
from pool_history.application.ports.tick_histogram_port import TickHistogramPort
from pool_history.domain.exceptions import PoolHistoryInputError, PoolNotFoundError
from pool_history.domain.services.tick_histogram import (
    DEFAULT_SCAFFOLD_HALF_WIDTH,
    DEFAULT_TICK_SPACING,
    build_tick_histogram,
)
from pool_history.domain.services.univ3_math import fee_tier_to_percent, parse_int


DEFAULT_POSITIONS_LIMIT = 1000


class GetTickHistogramUseCase:
    def __init__(
        self,
        *,
        tick_histogram_port: TickHistogramPort,
        default_positions_limit: int = DEFAULT_POSITIONS_LIMIT,
        default_scaffold_half_width: int = DEFAULT_SCAFFOLD_HALF_WIDTH,
    ):
        self._tick_histogram_port = tick_histogram_port
        self._default_positions_limit = default_positions_limit
        self._default_scaffold_half_width = default_scaffold_half_width

    def execute(self, command: GetTickHistogramInput) -> GetTickHistogramOutput:
        pool_id = (command.pool_id or "").strip().lower()
        if not pool_id:
            raise PoolHistoryInputError("pool_id is required.")
        positions_limit = (
            command.positions_limit if command.positions_limit is not None else self._default_positions_limit
        )
        scaffold_half_width = (
            command.scaffold_half_width
            if command.scaffold_half_width is not None
            else self._default_scaffold_half_width
        )
        if positions_limit < 1:
            raise PoolHistoryInputError("positions_limit must be >= 1.")
        if scaffold_half_width < 0:
            raise PoolHistoryInputError("scaffold_half_width must be >= 0.")

        pool = self._tick_histogram_port.get_pool(pool_id=pool_id)
        if pool is None:
            raise PoolNotFoundError(f"Pool not found: {pool_id}")

        positions = self._tick_histogram_port.list_active_positions(
            pool_id=pool_id,
            limit=positions_limit,
        )
        ticks = build_tick_histogram(
            positions,
            pool,
            scaffold_half_width=scaffold_half_width,
        )
        is_scaffold = all(node.liquidity_gross == 0 for node in ticks)

        try:
            fee_tier_pct = fee_tier_to_percent(pool.fee_tier)
        except ValueError:
            fee_tier_pct = None

        return GetTickHistogramOutput(
            pool_id=pool.id,
            token0_symbol=self._token_symbol(pool.token0),
            token1_symbol=self._token_symbol(pool.token1),
            current_tick=parse_int(pool.tick, 0),
            tick_spacing=parse_int(pool.tick_spacing, DEFAULT_TICK_SPACING),
            fee_tier_pct=fee_tier_pct,
            position_count=len(positions),
            is_scaffold=is_scaffold,
            ticks=ticks,
        )

    def _token_symbol(self, token_id: str | None) -> str | None:
        if not token_id:
            return None
        token = self._tick_histogram_port.get_token(token_id=token_id)
        return token.symbol if token is not None else None
