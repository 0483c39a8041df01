from __future__ import annotations

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


@dataclass(frozen=True)
class Settings:
    envio_api_url: str
    graphql_timeout_seconds: float
    graphql_max_retries: int
    graphql_min_interval_ms: int
    swap_fetch_page_size: int
    swap_fetch_max_pages: int
    swap_fetch_page_delay_ms: int
    liquidity_events_page_size: int
    positions_limit: int
    history_lookback_days: int
    history_timezone: ZoneInfo
    tick_scaffold_half_width: int


def get_settings() -> Settings:
    return Settings(
        envio_api_url=_env("ENVIO_API_URL", "http://localhost:8080/v1/graphql"),
        graphql_timeout_seconds=float(_env("GRAPHQL_TIMEOUT_SECONDS", "10")),
        graphql_max_retries=int(_env("GRAPHQL_MAX_RETRIES", "3")),
        graphql_min_interval_ms=int(_env("GRAPHQL_MIN_INTERVAL_MS", "0")),
        swap_fetch_page_size=int(_env("SWAP_FETCH_PAGE_SIZE", "1000")),
        swap_fetch_max_pages=int(_env("SWAP_FETCH_MAX_PAGES", "100")),
        swap_fetch_page_delay_ms=int(_env("SWAP_FETCH_PAGE_DELAY_MS", "100")),
        liquidity_events_page_size=int(_env("LIQUIDITY_EVENTS_PAGE_SIZE", "1000")),
        positions_limit=int(_env("POSITIONS_LIMIT", "1000")),
        history_lookback_days=int(_env("HISTORY_LOOKBACK_DAYS", "90")),
        history_timezone=ZoneInfo(_env("HISTORY_TIMEZONE", "UTC")),
        tick_scaffold_half_width=int(_env("TICK_SCAFFOLD_HALF_WIDTH", "50")),
    )
