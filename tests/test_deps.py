from __future__ import annotations

import pytest

from pool_history import deps
from pool_history.application.use_cases.get_pool_history import GetPoolHistoryUseCase
from pool_history.application.use_cases.get_tick_histogram import GetTickHistogramUseCase


@pytest.fixture(autouse=True)
def _reset_client_cache():
    deps.get_envio_graphql_client.cache_clear()
    yield
    deps.get_envio_graphql_client.cache_clear()


def test_use_cases_share_one_client_and_read_settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("HISTORY_LOOKBACK_DAYS", "30")
    monkeypatch.setenv("POSITIONS_LIMIT", "250")
    monkeypatch.setenv("TICK_SCAFFOLD_HALF_WIDTH", "10")
    monkeypatch.setenv("SWAP_FETCH_PAGE_DELAY_MS", "0")

    history = deps.get_pool_history_use_case()
    histogram = deps.get_tick_histogram_use_case()

    assert isinstance(history, GetPoolHistoryUseCase)
    assert isinstance(histogram, GetTickHistogramUseCase)
    assert history._pool_history_port is deps.get_envio_graphql_client()
    assert histogram._tick_histogram_port is deps.get_envio_graphql_client()
    assert history._default_lookback_days == 30
    assert histogram._default_positions_limit == 250
    assert histogram._default_scaffold_half_width == 10


def test_date_range_use_case_wraps_bulk_fetcher(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SWAP_FETCH_PAGE_DELAY_MS", "250")
    use_case = deps.get_fetch_swap_events_by_date_range_use_case()
    assert use_case._fetch_all_swap_events._page_delay_seconds == 0.25
