"""Tests for the resilient HTTP client."""

import httpx
import pytest

from stageflow.client import ApiRequest, ResilientApiClient
from stageflow.config import ApiConfig
from stageflow.errors import ErrorKind


@pytest.fixture
def delays(monkeypatch):
    recorded = []

    async def fake_schedule_retry(delay):
        recorded.append(delay)

    monkeypatch.setattr("stageflow.utils.retry.schedule_retry", fake_schedule_retry)
    return recorded


def _client(handler, token_provider=None, **config):
    settings = ApiConfig(base_url="https://backend.test", **config)
    return ResilientApiClient(
        settings, token_provider=token_provider, transport=httpx.MockTransport(handler)
    )


def _sequence(*responses):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return responses[min(len(calls), len(responses)) - 1]

    return handler, calls


@pytest.mark.asyncio
async def test_503_is_retried_max_retries_times(delays):
    handler, calls = _sequence(httpx.Response(503))
    async with _client(handler, max_retries=3, base_delay=1.0) as client:
        result = await client.send(ApiRequest(path="/api/Stages"))

    assert not result.ok
    assert result.error.kind is ErrorKind.HTTP_SERVER_ERROR
    assert result.error.status_code == 503
    assert result.error.attempts == 4
    assert result.retry_count == 3
    assert len(calls) == 4
    assert delays == [1.0, 2.0, 3.0]


@pytest.mark.asyncio
async def test_404_is_not_retried(delays):
    handler, calls = _sequence(httpx.Response(404, json={"message": "nope"}))
    async with _client(handler) as client:
        result = await client.send(ApiRequest(path="/api/Stages"))

    assert result.error.kind is ErrorKind.HTTP_CLIENT_ERROR
    assert result.error.message == "Resource not found"
    assert result.retry_count == 0
    assert len(calls) == 1
    assert delays == []


@pytest.mark.asyncio
async def test_recovers_after_two_server_errors(delays):
    handler, calls = _sequence(
        httpx.Response(500),
        httpx.Response(500),
        httpx.Response(200, json={"saved": 1}),
    )
    async with _client(handler, base_delay=0.5) as client:
        result = await client.send(
            ApiRequest(method="POST", path="/api/Stages", json_body=[{"a": 1}])
        )

    assert result.ok
    assert result.data == {"saved": 1}
    assert result.retry_count == 2
    assert len(calls) == 3
    assert delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_501_is_not_retried(delays):
    handler, calls = _sequence(httpx.Response(501))
    async with _client(handler) as client:
        result = await client.send(ApiRequest(path="/api/Stages"))

    assert result.error.kind is ErrorKind.HTTP_SERVER_ERROR
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_401_is_auth_expired(delays):
    handler, calls = _sequence(httpx.Response(401))
    async with _client(handler) as client:
        result = await client.send(ApiRequest(path="/api/Stages"))

    assert result.error.kind is ErrorKind.AUTH_EXPIRED
    assert result.error.requires_login
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_timeout_is_retried_then_classified(delays):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ReadTimeout("timed out", request=request)

    async with _client(handler, max_retries=2) as client:
        result = await client.send(ApiRequest(path="/api/Stages"))

    assert result.error.kind is ErrorKind.TIMEOUT
    assert len(attempts) == 3
    assert len(delays) == 2


@pytest.mark.asyncio
async def test_network_failure_then_success(delays):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=[])

    async with _client(handler) as client:
        result = await client.send(ApiRequest(path="/api/Reasons"))

    assert result.ok
    assert result.retry_count == 1


@pytest.mark.asyncio
async def test_empty_and_non_json_bodies_parse_to_none(delays):
    handler, _ = _sequence(
        httpx.Response(200, content=b""),
        httpx.Response(200, content=b"<html>ok</html>"),
    )
    async with _client(handler) as client:
        empty = await client.send(ApiRequest(path="/a"))
        html = await client.send(ApiRequest(path="/b"))

    assert empty.ok and empty.data is None
    assert html.ok and html.data is None


@pytest.mark.asyncio
async def test_bearer_token_read_on_every_attempt(delays):
    tokens = iter(["first", "second"])
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Authorization"))
        return httpx.Response(503 if len(seen) == 1 else 200, json={})

    async with _client(handler, token_provider=lambda: next(tokens)) as client:
        await client.send(ApiRequest(path="/api/Stages"))

    assert seen == ["Bearer first", "Bearer second"]


@pytest.mark.asyncio
async def test_async_token_provider(delays):
    seen = []

    async def provider():
        return "async-token"

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Authorization"))
        return httpx.Response(200, json={})

    async with _client(handler, token_provider=provider) as client:
        await client.send(ApiRequest(path="/api/Stages"))

    assert seen == ["Bearer async-token"]


@pytest.mark.asyncio
async def test_query_params_are_sent(delays):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        return httpx.Response(200, json={})

    async with _client(handler) as client:
        await client.send(ApiRequest(path="/api/feedback", params={"Mode": "All"}))

    assert seen[0].path == "/api/feedback"
    assert seen[0].params["Mode"] == "All"


@pytest.mark.asyncio
async def test_malformed_requests_raise():
    async with _client(lambda request: httpx.Response(200)) as client:
        with pytest.raises(ValueError):
            await client.send(ApiRequest(method="TRACE", path="/x"))
        with pytest.raises(ValueError):
            await client.send(
                ApiRequest(
                    method="POST",
                    path="/x",
                    json_body={"a": 1},
                    files={"file": ("a.jpg", b"1", "image/jpeg")},
                )
            )
