from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from hook_harness.scenario import (
    one_tool_call_exchanges,
    response_completed,
    response_created,
)
from hook_harness.server import StubServer
from hook_harness.stream_events import ScriptedExchange, iter_sse_events


def test_base_url_requires_start() -> None:
    stub = StubServer()
    with pytest.raises(RuntimeError):
        stub.base_url


def test_live_server_streams_scripted_turns() -> None:
    exchanges = one_tool_call_exchanges("echo hook-ok")
    with StubServer(exchanges, api_prefix="/v1") as stub:
        assert stub.base_url.startswith("http://127.0.0.1:")
        assert stub.base_url.endswith("/v1")
        with httpx.Client(timeout=10.0) as client:
            for exchange in exchanges:
                with client.stream(
                    "POST", f"{stub.base_url}/responses", json={"model": "m"}
                ) as resp:
                    assert resp.status_code == 200
                    events = list(iter_sse_events(resp))
                assert events == list(exchange.events)
            exhausted = client.post(f"{stub.base_url}/responses", json={"model": "m"})
            assert exhausted.status_code == 500
        assert stub.state.requests() == [{"model": "m"}] * 3
        assert stub.state.pending_count() == 0


def test_concurrent_requests_each_get_a_distinct_exchange() -> None:
    total = 12
    exchanges = [
        ScriptedExchange.of(response_created(f"resp-{i}"), response_completed(f"resp-{i}"))
        for i in range(total)
    ]
    with StubServer(exchanges) as stub:
        url = f"{stub.base_url}/responses"

        def fire(i: int) -> str:
            with httpx.Client(timeout=10.0) as client:
                resp = client.post(url, json={"caller": i})
                assert resp.status_code == 200
                return resp.text

        with ThreadPoolExecutor(max_workers=6) as pool:
            bodies = list(pool.map(fire, range(total)))

        with httpx.Client(timeout=10.0) as client:
            assert client.post(url, json={"caller": "late"}).status_code == 500

    assert sorted(bodies) == sorted(ex.encode() for ex in exchanges)
    recorded = stub.state.requests()
    assert sorted(r["caller"] for r in recorded if r["caller"] != "late") == list(range(total))
