"""Hardcover import provider.

Hardcover uses a GraphQL API with plain Bearer-token authentication. Users
generate a token at hardcover.app/account/api and paste it into the plugin
settings; there is no device flow.

Status mapping:
    status 3 (Read)          -> WatchEvent
    status 1 (Want to Read)  -> WatchlistEntry
    any rated book           -> Rating (0.5-5 stars doubled to 1-10)
"""
import logging
from collections import Counter
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional, List, Mapping, Callable, AsyncIterator

from hardcover_import.client import HardcoverClient
from hardcover_import.clock import Clock, system_clock
from hardcover_import.contract import (
    DeviceAuthPollResult,
    DeviceAuthStart,
    ImportCapabilities,
    PluginSettingsSchema,
    SettingDefinition,
    SettingType,
)
from hardcover_import.errors import ConfigurationError, UnsupportedOperation
from hardcover_import.parse import parse_watch_history, parse_ratings, parse_watchlist
from hardcover_import.records import WatchEvent, Rating, WatchlistEntry

logger = logging.getLogger(__name__)

KEY_API_TOKEN = "api_token"


class HardcoverImportProvider:
    """Import plugin exposing Hardcover reading data to the host."""

    plugin_id = "hardcover"
    name = "Hardcover"
    version = "1.0.0"
    author = "hardcover-import contributors"
    description = "Import reading history, ratings and want-to-read list from Hardcover.app via GraphQL"

    def __init__(
        self,
        clock: Clock = system_clock,
        client_factory: Callable[[str], HardcoverClient] = HardcoverClient
    ):
        """
        Initialize the provider in the unconfigured state.

        Args:
            clock: Source of "now" for records without a usable timestamp
            client_factory: Builds a client for a token
        """
        self.clock = clock
        self._client_factory = client_factory
        self._api_token: Optional[str] = None
        self._client: Optional[HardcoverClient] = None

        # Clients replaced by configure() that may still serve in-flight calls
        self._retired: List[HardcoverClient] = []
        self._in_use: Counter = Counter()

    # Settings

    def get_settings_schema(self) -> PluginSettingsSchema:
        return PluginSettingsSchema(settings=[
            SettingDefinition(
                key=KEY_API_TOKEN,
                label="Hardcover API Token",
                description=(
                    "Your personal API token from hardcover.app/account/api. "
                    "It is stored encrypted by the host application."
                ),
                type=SettingType.PASSWORD,
                required=True
            )
        ])

    def configure(self, settings: Mapping[str, str]):
        """
        Apply settings from the host.

        The current client is retired and a new one is built lazily on the
        next request, so later calls always use the new token.

        Args:
            settings: Setting key to value
        """
        token = settings.get(KEY_API_TOKEN)
        token = token.strip() if token else None
        self._api_token = token or None

        if self._client is not None:
            self._retired.append(self._client)
            self._client = None

        logger.info(f"Configured Hardcover provider (token {'set' if self._api_token else 'missing'})")

    @property
    def is_configured(self) -> bool:
        return self._api_token is not None

    # Auth

    async def start_auth(self) -> DeviceAuthStart:
        raise UnsupportedOperation(
            "Hardcover uses API token authentication, not a device flow. "
            "Generate your token at hardcover.app/account/api and paste it "
            "into the Hardcover plugin's API Token setting."
        )

    async def poll_auth(self, poll_code: str) -> DeviceAuthPollResult:
        raise UnsupportedOperation("Hardcover does not use a device code / poll flow.")

    async def is_authenticated(self) -> bool:
        """
        Check the configured token against the identity query.

        Never raises for API or transport failures; they count as
        "not authenticated".
        """
        if not self.is_configured:
            return False

        try:
            async with self._lease() as client:
                users = await client.get_me()
        except Exception as e:
            logger.warning(f"Hardcover authentication check failed: {e}")
            return False

        return len(users) > 0

    async def health_check(self) -> bool:
        return await self.is_authenticated()

    def get_capabilities(self) -> ImportCapabilities:
        return ImportCapabilities(
            supports_history=True,
            supports_ratings=True,
            supports_watchlist=True,
            requires_device_auth=False
        )

    # Imports

    async def get_watch_history(self, since: Optional[datetime] = None) -> List[WatchEvent]:
        """
        Import books marked as read.

        Args:
            since: Only return events watched at or after this instant

        Returns:
            List of WatchEvents (possibly empty)
        """
        self._ensure_token()
        async with self._lease() as client:
            rows = await client.get_read_books()

        events = parse_watch_history(rows, since=since, clock=self.clock)
        logger.info(f"Imported {len(events)} read books from {len(rows)} rows")
        return events

    async def get_ratings(self) -> List[Rating]:
        """Import rated books on the 1-10 scale."""
        self._ensure_token()
        async with self._lease() as client:
            rows = await client.get_rated_books()

        ratings = parse_ratings(rows, clock=self.clock)
        logger.info(f"Imported {len(ratings)} ratings from {len(rows)} rows")
        return ratings

    async def get_watchlist(self) -> List[WatchlistEntry]:
        """Import the want-to-read list."""
        self._ensure_token()
        async with self._lease() as client:
            rows = await client.get_want_to_read()

        entries = parse_watchlist(rows, clock=self.clock)
        logger.info(f"Imported {len(entries)} want-to-read books from {len(rows)} rows")
        return entries

    # Client lifetime

    def _ensure_token(self):
        if not self.is_configured:
            raise ConfigurationError(
                "Hardcover API token is not configured. "
                "Get it at hardcover.app/account/api and set it in the "
                "Hardcover plugin settings."
            )

    @asynccontextmanager
    async def _lease(self) -> AsyncIterator[HardcoverClient]:
        """Hold the current client for one call, creating it if needed."""
        await self._close_idle_retired()

        # configure() may have cleared the token while we were closing clients
        self._ensure_token()
        if self._client is None:
            self._client = self._client_factory(self._api_token)
        client = self._client

        self._in_use[client] += 1
        try:
            yield client
        finally:
            self._in_use[client] -= 1
            if self._in_use[client] <= 0:
                del self._in_use[client]
            await self._close_idle_retired()

    async def _close_idle_retired(self):
        # Detach idle clients before the first await
        idle = [c for c in self._retired if not self._in_use[c]]
        if not idle:
            return
        self._retired = [c for c in self._retired if self._in_use[c]]

        for client in idle:
            await client.close()

    async def aclose(self):
        """Release every client this provider created."""
        clients = self._retired + ([self._client] if self._client else [])
        self._retired = []
        self._client = None
        for client in clients:
            await client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
