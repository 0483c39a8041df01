from __future__ import annotations

import httpx
import pytest

from pool_history.infrastructure.clients.envio_graphql_client import (
    MODIFY_LIQUIDITY_QUERY,
    SWAPS_QUERY,
    EnvioGraphQLClient,
    EnvioGraphQLClientSettings,
    GraphQLRequestError,
    GraphQLSchemaError,
    _raise_for_graphql_errors,
)


MODULE = "pool_history.infrastructure.clients.envio_graphql_client"


def _make_client(*, max_retries: int = 1, liquidity_events_page_size: int = 1000) -> EnvioGraphQLClient:
    return EnvioGraphQLClient(
        EnvioGraphQLClientSettings(
            api_url="https://indexer.example/v1/graphql",
            timeout_seconds=10,
            max_retries=max_retries,
            min_interval_ms=0,
            liquidity_events_page_size=liquidity_events_page_size,
        )
    )


def _install_transport(monkeypatch: pytest.MonkeyPatch, handler) -> None:
    real_client = httpx.Client

    def _client_factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(f"{MODULE}.httpx.Client", _client_factory)


def _modify_row(index: int) -> dict:
    return {
        "id": f"m{index}",
        "transaction": f"0xtx{index}",
        "timestamp": str(1_700_000_000 + index),
        "sender": "0xsender",
        "origin": None,
        "amount0": "1.5",
        "amount1": "2",
        "amountUSD": "3.5",
        "tickLower": "-60",
        "tickUpper": "60",
        "liquidityDelta": "1000",
        "logIndex": 3,
    }


def test_list_swap_events_maps_rows_and_passes_variables(monkeypatch: pytest.MonkeyPatch):
    client = _make_client()
    captured: dict = {}

    def fake_post(*, query: str, variables: dict) -> dict:
        captured["query"] = query
        captured["variables"] = variables
        return {
            "data": {
                "Swap": [
                    {
                        "id": "s1",
                        "timestamp": 1_700_000_000,
                        "transaction": "0xtx",
                        "sender": "0xsender",
                        "origin": "0xorigin",
                        "amount0": "-1.25",
                        "amount1": "2500",
                        "amountUSD": "2500.5",
                        "sqrtPriceX96": "79228162514264337593543950336",
                        "tick": 12,
                        "logIndex": 7,
                    }
                ]
            }
        }

    monkeypatch.setattr(client, "_post_graphql", fake_post)
    events = client.list_swap_events(pool_id="0xpool", start_time=1_699_000_000, limit=500)

    assert captured["query"] == SWAPS_QUERY
    assert captured["variables"] == {"poolId": "0xpool", "startTime": 1_699_000_000, "limit": 500}
    assert len(events) == 1
    assert events[0].timestamp == "1700000000"
    assert events[0].amount_usd == "2500.5"
    assert events[0].tick == "12"
    assert events[0].log_index == "7"


def test_list_modify_liquidity_events_pages_with_offset(monkeypatch: pytest.MonkeyPatch):
    client = _make_client(liquidity_events_page_size=2)
    offsets: list[int] = []
    pages = [[_modify_row(0), _modify_row(1)], [_modify_row(2)]]

    def fake_post(*, query: str, variables: dict) -> dict:
        assert query == MODIFY_LIQUIDITY_QUERY
        offsets.append(variables["offset"])
        return {"data": {"ModifyLiquidity": pages[len(offsets) - 1]}}

    monkeypatch.setattr(client, "_post_graphql", fake_post)
    events = client.list_modify_liquidity_events(pool_id="0xpool", start_time=0)

    assert offsets == [0, 2]
    assert [event.id for event in events] == ["m0", "m1", "m2"]
    assert events[0].origin is None
    assert events[0].liquidity_delta == "1000"


def test_get_pool_returns_none_when_missing(monkeypatch: pytest.MonkeyPatch):
    client = _make_client()
    monkeypatch.setattr(client, "_post_graphql", lambda **_: {"data": {"Pool_by_pk": None}})
    assert client.get_pool(pool_id="0xmissing") is None


def test_get_pool_and_token(monkeypatch: pytest.MonkeyPatch):
    client = _make_client()
    responses = {
        "Pool_by_pk": {
            "id": "0xpool",
            "liquidity": "123",
            "sqrtPrice": "79228162514264337593543950336",
            "tick": "0",
            "feeTier": "3000",
            "tickSpacing": "60",
            "token0": {"id": "0xa"},
            "token1": "0xb",
            "token0Price": "1",
            "token1Price": "1",
            "totalValueLockedUSD": "10",
            "totalValueLockedToken0": "5",
            "totalValueLockedToken1": "5",
        },
        "Token_by_pk": {"id": "0xa", "symbol": "WETH", "name": "Wrapped Ether", "decimals": "18"},
    }

    def fake_post(*, query: str, variables: dict) -> dict:
        _ = variables
        key = "Token_by_pk" if "Token_by_pk" in query else "Pool_by_pk"
        return {"data": {key: responses[key]}}

    monkeypatch.setattr(client, "_post_graphql", fake_post)
    pool = client.get_pool(pool_id="0xpool")
    token = client.get_token(token_id="0xa")

    assert pool is not None
    assert (pool.token0, pool.token1) == ("0xa", "0xb")
    assert pool.fee_tier == "3000"
    assert token is not None
    assert token.decimals == 18


def test_list_active_positions_warns_when_limit_reached(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
):
    client = _make_client()
    rows = [
        {"id": f"p{i}", "owner": "0xowner", "tickLower": -60, "tickUpper": 60, "liquidity": "10"}
        for i in range(2)
    ]
    monkeypatch.setattr(client, "_post_graphql", lambda **_: {"data": {"LiquidityPosition": rows}})

    with caplog.at_level("WARNING"):
        positions = client.list_active_positions(pool_id="0xpool", limit=2)

    assert len(positions) == 2
    assert positions[0].tick_lower == "-60"
    assert "positions_limit_reached" in caplog.text


def test_post_graphql_retries_transient_errors(monkeypatch: pytest.MonkeyPatch):
    client = _make_client(max_retries=3)
    sleeps: list[float] = []
    monkeypatch.setattr(f"{MODULE}.time.sleep", lambda seconds: sleeps.append(seconds))
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(503, request=request)
        if calls["count"] == 2:
            return httpx.Response(200, json={"errors": [{"message": "upstream timeout"}]}, request=request)
        return httpx.Response(200, json={"data": {"Swap": []}}, request=request)

    _install_transport(monkeypatch, handler)
    payload = client._post_graphql(query=SWAPS_QUERY, variables={})

    assert payload == {"data": {"Swap": []}}
    assert calls["count"] == 3
    assert sleeps == [0.25, 0.5]


def test_post_graphql_raises_after_exhausting_retries(monkeypatch: pytest.MonkeyPatch):
    client = _make_client(max_retries=2)
    monkeypatch.setattr(f"{MODULE}.time.sleep", lambda _seconds: None)
    _install_transport(monkeypatch, lambda request: httpx.Response(500, request=request))

    with pytest.raises(GraphQLRequestError, match="after retries"):
        client._post_graphql(query=SWAPS_QUERY, variables={})


def test_post_graphql_does_not_retry_schema_errors(monkeypatch: pytest.MonkeyPatch):
    client = _make_client(max_retries=5)
    monkeypatch.setattr(f"{MODULE}.time.sleep", lambda _seconds: None)
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(
            200,
            json={"errors": [{"message": "field 'Swapz' not found in type: 'query_root'"}]},
            request=request,
        )

    _install_transport(monkeypatch, handler)
    with pytest.raises(GraphQLSchemaError):
        client._post_graphql(query=SWAPS_QUERY, variables={})
    assert calls["count"] == 1


def test_rate_limit_waits_for_min_interval(monkeypatch: pytest.MonkeyPatch):
    client = EnvioGraphQLClient(
        EnvioGraphQLClientSettings(
            api_url="https://indexer.example/v1/graphql",
            timeout_seconds=10,
            max_retries=1,
            min_interval_ms=200,
        )
    )
    clock = {"now": 100.0}
    sleeps: list[float] = []

    def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        clock["now"] += seconds

    monkeypatch.setattr(f"{MODULE}.time.monotonic", lambda: clock["now"])
    monkeypatch.setattr(f"{MODULE}.time.sleep", fake_sleep)

    client._respect_rate_limit()
    clock["now"] += 0.05
    client._respect_rate_limit()
    clock["now"] += 1.0
    client._respect_rate_limit()

    assert sleeps == [pytest.approx(0.15)]


@pytest.mark.parametrize(
    ("payload", "error"),
    [
        ({"errors": [{"message": "Cannot query field 'foo'"}]}, GraphQLSchemaError),
        ({"errors": [{"message": "database busy"}]}, GraphQLRequestError),
        ({"errors": ["plain string error"]}, GraphQLRequestError),
    ],
)
def test_graphql_error_payloads_map_to_exceptions(payload: dict, error: type[Exception]):
    with pytest.raises(error):
        _raise_for_graphql_errors(payload)


def test_payload_without_errors_passes():
    _raise_for_graphql_errors({"data": {"Swap": []}, "errors": []})
