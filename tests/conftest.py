"""Shared fixtures for connector tests."""
import json
from datetime import datetime, timezone

import httpx
import pytest

from hardcover_import.client import HardcoverClient
from hardcover_import.clock import fixed_clock

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def graphql_response(data=None, errors=None, status_code=200, headers=None):
    envelope = {"data": data}
    if errors is not None:
        envelope["errors"] = errors
    return httpx.Response(status_code, content=json.dumps(envelope), headers=headers)


def make_client(handler, token="test-token", sleep=None, **kwargs):
    return HardcoverClient(
        token,
        transport=httpx.MockTransport(handler),
        sleep=sleep or RecordingSleep(),
        **kwargs
    )


@pytest.fixture
def clock():
    return fixed_clock(NOW)


@pytest.fixture
def sleep():
    return RecordingSleep()


DUNE_ROW = {
    "id": 1,
    "book": {
        "id": 42,
        "title": "Dune",
        "release_year": 1965,
        "book_mappings": [{"isbn_13": "9780441013593"}]
    },
    "rating": 4.5,
    "inserted_at": "2023-01-01T00:00:00Z"
}
