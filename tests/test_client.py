"""Tests for the GraphQL transport."""
import asyncio
import json
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest

from hardcover_import import queries
from hardcover_import.client import HardcoverClient, parse_retry_after
from hardcover_import.errors import ApiError, RateLimitExceeded, TransportError
from conftest import RecordingSleep, graphql_response, make_client, DUNE_ROW


def test_parse_retry_after_seconds():
    assert parse_retry_after("5", 60) == 5
    assert parse_retry_after(" 2.5 ", 60) == 2.5


def test_parse_retry_after_missing_or_bad_uses_default():
    assert parse_retry_after(None, 60) == 60
    assert parse_retry_after("", 60) == 60
    assert parse_retry_after("soon", 60) == 60


def test_parse_retry_after_non_finite_uses_default():
    """inf and nan would sleep forever or fail, so the default applies."""
    assert parse_retry_after("inf", 60) == 60
    assert parse_retry_after("-Infinity", 60) == 60
    assert parse_retry_after("nan", 60) == 60


def test_parse_retry_after_http_date():
    """HTTP-dates become a delay relative to now."""
    future = datetime.now(timezone.utc) + timedelta(seconds=120)
    delay = parse_retry_after(format_datetime(future, usegmt=True), 60)
    assert 100 <= delay <= 121

    past = datetime.now(timezone.utc) - timedelta(hours=1)
    assert parse_retry_after(format_datetime(past, usegmt=True), 60) == 0


@pytest.mark.asyncio
async def test_execute_sends_query_and_headers():
    """Body carries query and variables; auth and user agent headers are set."""
    seen = []

    def handler(request):
        seen.append(request)
        return graphql_response({"me": [{"id": 1, "username": "reader"}]})

    async with make_client(handler, token="secret") as client:
        data = await client.execute(queries.ME, {"a": 1})

    assert data == {"me": [{"id": 1, "username": "reader"}]}
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.hardcover.app/v1/graphql"
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.headers["User-Agent"].startswith("hardcover-import/")
    assert json.loads(request.content) == {"query": queries.ME, "variables": {"a": 1}}


@pytest.mark.asyncio
async def test_execute_sends_null_variables():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return graphql_response({"user_books": []})

    async with make_client(handler) as client:
        await client.execute(queries.READ_BOOKS)

    assert seen == [{"query": queries.READ_BOOKS, "variables": None}]


@pytest.mark.asyncio
async def test_three_429s_raise_rate_limit_exceeded(sleep):
    """Exactly three attempts, default 60s backoff between them."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429)

    async with make_client(handler, sleep=sleep) as client:
        with pytest.raises(RateLimitExceeded) as exc_info:
            await client.execute(queries.RATED_BOOKS)

    assert len(calls) == 3
    assert sleep.delays == [60, 60]
    assert exc_info.value.attempts == 3


@pytest.mark.asyncio
async def test_429_honors_retry_after_then_succeeds(sleep):
    """A throttled attempt waits Retry-After seconds, then retries."""
    responses = [
        httpx.Response(429, headers={"Retry-After": "3"}),
        graphql_response({"user_books": [DUNE_ROW]}),
    ]

    def handler(request):
        return responses.pop(0)

    async with make_client(handler, sleep=sleep) as client:
        rows = await client.get_rated_books()

    assert sleep.delays == [3]
    assert len(rows) == 1
    assert rows[0].book.id == 42


@pytest.mark.asyncio
async def test_server_error_is_not_retried(sleep):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    async with make_client(handler, sleep=sleep) as client:
        with pytest.raises(TransportError) as exc_info:
            await client.execute(queries.ME)

    assert exc_info.value.status_code == 503
    assert len(calls) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_unauthorized_raises_transport_error():
    async with make_client(lambda request: httpx.Response(401)) as client:
        with pytest.raises(TransportError) as exc_info:
            await client.get_me()

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_graphql_errors_raise_first_message():
    """A 200 response with errors surfaces the first message only."""
    def handler(request):
        return graphql_response(None, errors=[{"message": "field 'x' not found"}, {"message": "second"}])

    async with make_client(handler) as client:
        with pytest.raises(ApiError) as exc_info:
            await client.execute(queries.READ_BOOKS)

    assert exc_info.value.message == "field 'x' not found"
    assert "second" not in str(exc_info.value)


@pytest.mark.asyncio
async def test_empty_errors_array_is_success():
    def handler(request):
        return graphql_response({"user_books": []}, errors=[])

    async with make_client(handler) as client:
        assert await client.get_want_to_read() == []


@pytest.mark.asyncio
async def test_invalid_json_raises_api_error():
    async with make_client(lambda request: httpx.Response(200, content=b"<html>")) as client:
        with pytest.raises(ApiError):
            await client.execute(queries.ME)


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(TransportError) as exc_info:
            await client.execute(queries.ME)

    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_cancel_during_backoff_stops_retrying():
    """Cancelling while backing off propagates and makes no further requests."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429)

    client = HardcoverClient(
        "test-token",
        transport=httpx.MockTransport(handler),
        default_retry_after=60
    )
    task = asyncio.create_task(client.execute(queries.ME))

    for _ in range(100):
        await asyncio.sleep(0)
        if calls:
            break
    await asyncio.sleep(0)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(calls) == 1
    await client.close()
    assert client.closed


@pytest.mark.asyncio
async def test_cancel_propagates_from_sleep():
    """A sleep that is cancelled is not retried."""
    calls = []

    async def cancelled_sleep(delay):
        raise asyncio.CancelledError()

    def handler(request):
        calls.append(request)
        return httpx.Response(429)

    async with make_client(handler, sleep=cancelled_sleep) as client:
        with pytest.raises(asyncio.CancelledError):
            await client.execute(queries.ME)

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_custom_attempt_limit():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429, headers={"Retry-After": "0"})

    sleep = RecordingSleep()
    async with make_client(handler, sleep=sleep, max_attempts=1) as client:
        with pytest.raises(RateLimitExceeded):
            await client.execute(queries.ME)

    assert len(calls) == 1
    assert sleep.delays == []
