from __future__ import annotations

from functools import lru_cache

from pool_history.application.use_cases.fetch_all_swap_events import (
    FetchAllSwapEventsUseCase,
    FetchSwapEventsByDateRangeUseCase,
)
from pool_history.application.use_cases.get_pool_history import GetPoolHistoryUseCase
from pool_history.application.use_cases.get_tick_histogram import GetTickHistogramUseCase
from pool_history.infrastructure.clients.envio_graphql_client import (
    EnvioGraphQLClient,
    EnvioGraphQLClientSettings,
)
from pool_history.shared.config import get_settings


@lru_cache(maxsize=1)
def get_envio_graphql_client() -> EnvioGraphQLClient:
    settings = get_settings()
    return EnvioGraphQLClient(
        EnvioGraphQLClientSettings(
            api_url=settings.envio_api_url,
            timeout_seconds=settings.graphql_timeout_seconds,
            max_retries=settings.graphql_max_retries,
            min_interval_ms=settings.graphql_min_interval_ms,
            liquidity_events_page_size=settings.liquidity_events_page_size,
        )
    )


def get_fetch_all_swap_events_use_case() -> FetchAllSwapEventsUseCase:
    settings = get_settings()
    return FetchAllSwapEventsUseCase(
        swap_events_port=get_envio_graphql_client(),
        page_delay_seconds=settings.swap_fetch_page_delay_ms / 1000.0,
    )


def get_fetch_swap_events_by_date_range_use_case() -> FetchSwapEventsByDateRangeUseCase:
    return FetchSwapEventsByDateRangeUseCase(
        fetch_all_swap_events=get_fetch_all_swap_events_use_case(),
    )


def get_pool_history_use_case() -> GetPoolHistoryUseCase:
    settings = get_settings()
    return GetPoolHistoryUseCase(
        pool_history_port=get_envio_graphql_client(),
        fetch_all_swap_events=get_fetch_all_swap_events_use_case(),
        swap_max_pages=settings.swap_fetch_max_pages,
        swap_page_size=settings.swap_fetch_page_size,
        default_lookback_days=settings.history_lookback_days,
        tz=settings.history_timezone,
    )


def get_tick_histogram_use_case() -> GetTickHistogramUseCase:
    settings = get_settings()
    return GetTickHistogramUseCase(
        tick_histogram_port=get_envio_graphql_client(),
        default_positions_limit=settings.positions_limit,
        default_scaffold_half_width=settings.tick_scaffold_half_width,
    )
