from __future__ import annotations

from typing import Protocol

from pool_history.domain.entities.pool import LiquidityPosition, PoolSnapshot, Token


class TickHistogramPort(Protocol):
    def get_pool(self, *, pool_id: str) -> PoolSnapshot | None:
        ...

    def list_active_positions(self, *, pool_id: str, limit: int) -> list[LiquidityPosition]:
        ...

    def get_token(self, *, token_id: str) -> Token | None:
        ...
