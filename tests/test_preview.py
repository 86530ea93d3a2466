"""Tests for PreviewLookupClient retry behaviour."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from chart_linker.preview import NOT_FOUND, PreviewLookupClient, RetryPolicy

BASE_URL = "https://preview.test/lookup/appleMusic.php"


def make_client(handler, policy: RetryPolicy) -> PreviewLookupClient:
    transport = httpx.MockTransport(handler)
    return PreviewLookupClient(
        BASE_URL, policy=policy, client=httpx.AsyncClient(transport=transport)
    )


def lookup(client: PreviewLookupClient, title: str, artist: str) -> str:
    async def _run() -> str:
        try:
            return await client.lookup_preview(title, artist)
        finally:
            await client._client.aclose()

    return asyncio.run(_run())


def test_first_attempt_success(no_delay):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[{"preview_url": "https://audio.test/a.m4a"}])

    result = lookup(make_client(handler, no_delay), "Fast Car", "Luke Combs")

    assert result == "https://audio.test/a.m4a"
    assert len(requests) == 1
    assert requests[0].url.params["title"] == "Fast Car"
    assert requests[0].url.params["artist"] == "Luke Combs"


def test_retries_until_result(no_delay):
    responses = iter(
        [
            httpx.Response(200, json=[]),
            httpx.Response(500),
            httpx.Response(200, json=[{"preview_url": "https://audio.test/b.m4a"}]),
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return next(responses)

    result = lookup(make_client(handler, no_delay), "Fast Car", "Luke Combs")
    assert result == "https://audio.test/b.m4a"


def test_exhausted_attempts_return_sentinel(no_delay):
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(200, json=[])

    result = lookup(make_client(handler, no_delay), "Fast Car", "Luke Combs")

    assert result == NOT_FOUND
    assert calls == 3


def test_attempt_count_follows_policy():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(200, json=[{"preview_url": None}])

    result = lookup(
        make_client(handler, RetryPolicy(attempts=5, delay_s=0)), "Fast Car", "Luke Combs"
    )

    assert result == NOT_FOUND
    assert calls == 5


def test_transport_error_counts_as_attempt(no_delay):
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        raise httpx.ConnectError("unreachable", request=request)

    result = lookup(make_client(handler, no_delay), "Fast Car", "Luke Combs")

    assert result == NOT_FOUND
    assert calls == 3


def test_invalid_json_counts_as_attempt(no_delay):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    assert lookup(make_client(handler, no_delay), "Fast Car", "Luke Combs") == NOT_FOUND


def test_delay_between_attempts(monkeypatch):
    sleeps: list[float] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    monkeypatch.setattr("chart_linker.preview.asyncio.sleep", fake_sleep)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    lookup(make_client(handler, RetryPolicy(attempts=3, delay_s=1.0)), "A", "B")

    # No sleep after the final attempt
    assert sleeps == [1.0, 1.0]


@pytest.mark.parametrize("attempts,delay", [(0, 1.0), (3, -1.0)])
def test_invalid_policy(attempts, delay):
    with pytest.raises(ValueError):
        RetryPolicy(attempts=attempts, delay_s=delay)


def test_configured_timeout_applies_to_shared_client(no_delay):
    timeouts: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        timeouts.append(request.extensions["timeout"])
        return httpx.Response(200, json=[{"preview_url": "https://audio.test/a.m4a"}])

    shared = httpx.AsyncClient(transport=httpx.MockTransport(handler), timeout=30.0)
    client = PreviewLookupClient(BASE_URL, policy=no_delay, client=shared, timeout_s=7.5)

    lookup(client, "Fast Car", "Luke Combs")

    assert timeouts[0]["read"] == 7.5
    assert timeouts[0]["connect"] == 7.5
