from __future__ import annotations

from typing import Protocol

from pool_history.domain.entities.events import SwapEvent


class SwapEventsPort(Protocol):
    def list_swap_events(
        self,
        *,
        pool_id: str,
        start_time: int,
        limit: int,
    ) -> list[SwapEvent]:
        """Up to ``limit`` swaps with timestamp >= ``start_time``, ascending."""
        ...
