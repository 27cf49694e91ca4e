"""Async GraphQL client for the Hardcover API with rate-limit backoff."""
import asyncio
import logging
import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Dict, Any, List, Callable, Awaitable

import httpx

from hardcover_import import queries
from hardcover_import.config import Config
from hardcover_import.errors import ApiError, RateLimitExceeded, TransportError
from hardcover_import.models import parse_me, parse_user_books, MeUser, UserBook

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def parse_retry_after(value: Optional[str], default: float) -> float:
    """
    Interpret a Retry-After header.

    Args:
        value: Header value, either delta seconds or an HTTP-date
        default: Delay to use when the header is missing or unreadable

    Returns:
        Delay in seconds (never negative)
    """
    if value is None or not value.strip():
        return default

    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        seconds = None

    if seconds is not None:
        if not math.isfinite(seconds):
            logger.warning(f"Ignoring non-finite Retry-After header {value!r}, using {default}s")
            return default
        return max(0.0, seconds)

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.warning(f"Unreadable Retry-After header {value!r}, using {default}s")
        return default

    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class HardcoverClient:
    """Client for the Hardcover GraphQL endpoint with Bearer auth and 429 backoff."""

    def __init__(
        self,
        api_token: str,
        url: str = Config.HARDCOVER_API_URL,
        timeout: float = Config.DEFAULT_TIMEOUT,
        max_attempts: int = Config.DEFAULT_MAX_ATTEMPTS,
        default_retry_after: float = Config.DEFAULT_RETRY_AFTER,
        user_agent: str = Config.USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep
    ):
        """
        Initialize the Hardcover client.

        Args:
            api_token: Personal API token from hardcover.app/account/api
            url: GraphQL endpoint
            timeout: Request timeout in seconds
            max_attempts: Total attempts per query while throttled
            default_retry_after: Delay when a 429 carries no Retry-After
            user_agent: User-Agent header sent with every request
            transport: Optional httpx transport (used by tests)
            sleep: Coroutine used for backoff waits
        """
        self.url = url
        self.max_attempts = max_attempts
        self.default_retry_after = default_retry_after
        self._sleep = sleep

        # One pooled client for the lifetime of this instance
        self.client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_token}",
                "User-Agent": user_agent,
            }
        )

    @property
    def closed(self) -> bool:
        """Whether the underlying HTTP client has been closed."""
        return self.client.is_closed

    async def execute(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Execute a GraphQL query, retrying while rate limited.

        Args:
            query: GraphQL document
            variables: Optional variables object

        Returns:
            The ``data`` member of the response envelope

        Raises:
            RateLimitExceeded: every attempt returned 429
            TransportError: non-2xx status or network failure
            ApiError: the envelope carried GraphQL errors
        """
        body = {"query": query, "variables": variables}

        for attempt in range(self.max_attempts):
            logger.info(f"Request attempt {attempt + 1}/{self.max_attempts}: {self.url}")

            try:
                response = await self.client.post(self.url, json=body)
            except httpx.TimeoutException as e:
                logger.error(f"Timeout calling Hardcover: {e}")
                raise TransportError(f"Request to Hardcover timed out: {e}") from e
            except httpx.TransportError as e:
                logger.error(f"Connection error calling Hardcover: {e}")
                raise TransportError(f"Could not reach Hardcover: {e}") from e

            if response.status_code == 429:
                logger.warning(f"Rate limited (429) on attempt {attempt + 1}")
                if attempt < self.max_attempts - 1:
                    await self._backoff(response)
                continue

            if not response.is_success:
                logger.error(f"Hardcover returned HTTP {response.status_code}")
                raise TransportError(
                    f"Hardcover request failed with HTTP {response.status_code}",
                    status_code=response.status_code
                )

            return self._decode(response)

        logger.error(f"All {self.max_attempts} attempts were rate limited")
        raise RateLimitExceeded(self.max_attempts)

    async def _backoff(self, response: httpx.Response):
        """Sleep for the server-requested delay before the next attempt."""
        delay = parse_retry_after(response.headers.get("Retry-After"), self.default_retry_after)
        logger.info(f"Backing off for {delay:.2f} seconds")
        await self._sleep(delay)

    @staticmethod
    def _decode(response: httpx.Response) -> Optional[Dict[str, Any]]:
        try:
            envelope = response.json()
        except ValueError as e:
            raise ApiError(f"invalid JSON response ({e})") from e

        if not isinstance(envelope, dict):
            raise ApiError("response envelope is not an object")

        errors = envelope.get("errors") or []
        if errors:
            first = errors[0]
            message = first.get("message", str(first)) if isinstance(first, dict) else str(first)
            raise ApiError(message)

        return envelope.get("data")

    async def get_me(self) -> List[MeUser]:
        """Fetch the authenticated user (used to verify the token)."""
        return parse_me(await self.execute(queries.ME))

    async def get_read_books(self) -> List[UserBook]:
        """Books with status "Read"."""
        return parse_user_books(await self.execute(queries.READ_BOOKS))

    async def get_rated_books(self) -> List[UserBook]:
        """
        Fetch books the user has rated.

        Returns:
            Decoded user_books rows (empty if none)
        """
        return parse_user_books(await self.execute(queries.RATED_BOOKS))

    async def get_want_to_read(self) -> List[UserBook]:
        """Books with status "Want to Read"."""
        return parse_user_books(await self.execute(queries.WANT_TO_READ))

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
