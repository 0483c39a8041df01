from __future__ import annotations


class DomainError(Exception):
    """Base for pool history domain errors."""


class PoolHistoryInputError(DomainError):
    """Invalid parameters for a pool history request."""


class PoolNotFoundError(DomainError):
    """Requested pool does not exist in the indexer."""


class SwapFetchCancelledError(DomainError):
    """Bulk swap fetch was cancelled between pages."""


class SwapEventsFetchError(DomainError):
    """A page request failed; the partial accumulation was discarded."""

    def __init__(self, message: str, *, pool_id: str, pages_completed: int):
        super().__init__(message)
        self.pool_id = pool_id
        self.pages_completed = pages_completed
