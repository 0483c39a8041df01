from __future__ import annotations

from typing import Protocol

from pool_history.domain.entities.events import ModifyLiquidityEvent
from pool_history.domain.entities.pool import PoolSnapshot


class PoolHistoryPort(Protocol):
    def get_pool(self, *, pool_id: str) -> PoolSnapshot | None:
        ...

    def list_modify_liquidity_events(
        self,
        *,
        pool_id: str,
        start_time: int,
    ) -> list[ModifyLiquidityEvent]:
        ...
