from __future__ import annotations

from dataclasses import dataclass
import logging
from threading import Lock
import time

import httpx

from pool_history.domain.entities.events import ModifyLiquidityEvent, SwapEvent
from pool_history.domain.entities.pool import LiquidityPosition, PoolSnapshot, Token
from pool_history.infrastructure.mappers.indexer_mapper import (
    map_row_to_liquidity_position,
    map_row_to_modify_liquidity_event,
    map_row_to_pool_snapshot,
    map_row_to_swap_event,
    map_row_to_token,
)


logger = logging.getLogger(__name__)


NON_RETRYABLE_MARKERS = (
    "not found in type",
    "cannot query field",
    "unknown argument",
    "unknown type",
    "validation-failed",
)


class GraphQLRequestError(RuntimeError):
    pass


class GraphQLSchemaError(GraphQLRequestError):
    pass


SWAPS_QUERY = """
query PoolSwapEvents($poolId: String!, $startTime: numeric!, $limit: Int!) {
  Swap(
    where: { pool: { _eq: $poolId }, timestamp: { _gte: $startTime } }
    order_by: { timestamp: asc }
    limit: $limit
  ) {
    id
    timestamp
    transaction
    sender
    origin
    amount0
    amount1
    amountUSD
    sqrtPriceX96
    tick
    logIndex
  }
}
"""

MODIFY_LIQUIDITY_QUERY = """
query PoolModifyLiquidityEvents($poolId: String!, $startTime: numeric!, $limit: Int!, $offset: Int!) {
  ModifyLiquidity(
    where: { pool: { _eq: $poolId }, timestamp: { _gte: $startTime } }
    order_by: { timestamp: asc }
    limit: $limit
    offset: $offset
  ) {
    id
    transaction
    timestamp
    sender
    origin
    amount0
    amount1
    amountUSD
    tickLower
    tickUpper
    liquidityDelta
    logIndex
  }
}
"""

ACTIVE_POSITIONS_QUERY = """
query ActivePoolPositions($poolId: String!, $limit: Int!) {
  LiquidityPosition(
    where: { pool: { _eq: $poolId }, liquidity: { _gt: "0" } }
    order_by: { liquidity: desc }
    limit: $limit
  ) {
    id
    owner
    tickLower
    tickUpper
    liquidity
  }
}
"""

POOL_QUERY = """
query PoolById($poolId: String!) {
  Pool_by_pk(id: $poolId) {
    id
    liquidity
    sqrtPrice
    tick
    feeTier
    tickSpacing
    token0
    token1
    token0Price
    token1Price
    totalValueLockedUSD
    totalValueLockedToken0
    totalValueLockedToken1
  }
}
"""

TOKEN_QUERY = """
query TokenById($tokenId: String!) {
  Token_by_pk(id: $tokenId) {
    id
    symbol
    name
    decimals
  }
}
"""


@dataclass(frozen=True)
class EnvioGraphQLClientSettings:
    api_url: str
    timeout_seconds: float
    max_retries: int
    min_interval_ms: int
    liquidity_events_page_size: int = 1000


class EnvioGraphQLClient:
    """Read-only client for the event indexer's GraphQL endpoint."""

    def __init__(self, settings: EnvioGraphQLClientSettings):
        self._settings = settings
        self._lock = Lock()
        self._next_request_at = 0.0

    def list_swap_events(self, *, pool_id: str, start_time: int, limit: int) -> list[SwapEvent]:
        payload = self._post_graphql(
            query=SWAPS_QUERY,
            variables={"poolId": pool_id, "startTime": int(start_time), "limit": int(limit)},
        )
        rows = payload.get("data", {}).get("Swap") or []
        return [map_row_to_swap_event(row) for row in rows]

    def list_modify_liquidity_events(self, *, pool_id: str, start_time: int) -> list[ModifyLiquidityEvent]:
        page_size = max(1, self._settings.liquidity_events_page_size)
        offset = 0
        result: list[ModifyLiquidityEvent] = []
        while True:
            payload = self._post_graphql(
                query=MODIFY_LIQUIDITY_QUERY,
                variables={
                    "poolId": pool_id,
                    "startTime": int(start_time),
                    "limit": page_size,
                    "offset": offset,
                },
            )
            rows = payload.get("data", {}).get("ModifyLiquidity") or []
            result.extend(map_row_to_modify_liquidity_event(row) for row in rows)
            if len(rows) < page_size:
                break
            offset += page_size

        logger.info(
            "envio_graphql_client: fetched_modify_liquidity_events pool=%s start_time=%s fetched=%s pages=%s",
            pool_id,
            start_time,
            len(result),
            offset // page_size + 1,
        )
        return result

    def list_active_positions(self, *, pool_id: str, limit: int) -> list[LiquidityPosition]:
        payload = self._post_graphql(
            query=ACTIVE_POSITIONS_QUERY,
            variables={"poolId": pool_id, "limit": int(limit)},
        )
        rows = payload.get("data", {}).get("LiquidityPosition") or []
        positions = [map_row_to_liquidity_position(row) for row in rows]
        if len(positions) >= limit:
            logger.warning(
                "envio_graphql_client: positions_limit_reached pool=%s limit=%s",
                pool_id,
                limit,
            )
        return positions

    def get_pool(self, *, pool_id: str) -> PoolSnapshot | None:
        payload = self._post_graphql(query=POOL_QUERY, variables={"poolId": pool_id})
        row = payload.get("data", {}).get("Pool_by_pk")
        if not row:
            return None
        return map_row_to_pool_snapshot(row)

    def get_token(self, *, token_id: str) -> Token | None:
        payload = self._post_graphql(query=TOKEN_QUERY, variables={"tokenId": token_id})
        row = payload.get("data", {}).get("Token_by_pk")
        if not row:
            return None
        return map_row_to_token(row)

    def _post_graphql(self, *, query: str, variables: dict) -> dict:
        attempts = max(1, self._settings.max_retries)
        delay = 0.25
        attempt = 0
        while True:
            attempt += 1
            try:
                return self._send_once(query=query, variables=variables)
            except GraphQLSchemaError:
                raise
            except (httpx.HTTPError, GraphQLRequestError, ValueError) as exc:
                if attempt >= attempts:
                    raise GraphQLRequestError(f"GraphQL request failed after retries: {exc}") from exc
                logger.warning(
                    "envio_graphql_client: graphql_retry attempt=%s/%s delay=%s error=%s",
                    attempt,
                    attempts,
                    delay,
                    exc,
                )
                time.sleep(delay)
                delay *= 2

    def _send_once(self, *, query: str, variables: dict) -> dict:
        self._respect_rate_limit()
        with httpx.Client(timeout=self._settings.timeout_seconds) as client:
            response = client.post(self._settings.api_url, json={"query": query, "variables": variables})
            response.raise_for_status()
            payload = response.json()
        _raise_for_graphql_errors(payload)
        return payload

    def _respect_rate_limit(self) -> None:
        min_interval = max(0, self._settings.min_interval_ms) / 1000.0
        if not min_interval:
            return
        with self._lock:
            wait = self._next_request_at - time.monotonic()
            if wait > 0:
                time.sleep(wait)
            self._next_request_at = time.monotonic() + min_interval


def _raise_for_graphql_errors(payload: dict) -> None:
    errors = payload.get("errors") or []
    if not errors:
        return
    message = " | ".join(str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors)
    if any(marker in message.lower() for marker in NON_RETRYABLE_MARKERS):
        raise GraphQLSchemaError(f"Non-retryable GraphQL schema error: {message}")
    raise GraphQLRequestError(message)
