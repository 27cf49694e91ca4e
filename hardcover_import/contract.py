"""Types shared with the host application's import-plugin contract."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Mapping, Protocol, runtime_checkable

from hardcover_import.records import WatchEvent, Rating, WatchlistEntry


class SettingType(str, Enum):
    TEXT = "text"
    PASSWORD = "password"


@dataclass(frozen=True)
class SettingDefinition:
    """One user-editable setting shown by the host's settings UI."""
    key: str
    label: str
    description: str = ""
    type: SettingType = SettingType.TEXT
    required: bool = False


@dataclass(frozen=True)
class PluginSettingsSchema:
    settings: List[SettingDefinition] = field(default_factory=list)


@dataclass(frozen=True)
class ImportCapabilities:
    supports_history: bool
    supports_ratings: bool
    supports_watchlist: bool
    requires_device_auth: bool


@dataclass(frozen=True)
class DeviceAuthStart:
    user_code: str
    verification_url: str
    poll_code: str
    expires_in: int
    interval: int


@dataclass(frozen=True)
class DeviceAuthPollResult:
    completed: bool
    error: Optional[str] = None


@runtime_checkable
class ImportProvider(Protocol):
    """Methods the host calls on an import plugin."""

    plugin_id: str
    name: str
    version: str
    author: str
    description: str

    def get_settings_schema(self) -> PluginSettingsSchema: ...

    def configure(self, settings: Mapping[str, str]) -> None: ...

    async def start_auth(self) -> DeviceAuthStart: ...

    async def poll_auth(self, poll_code: str) -> DeviceAuthPollResult: ...

    async def is_authenticated(self) -> bool: ...

    def get_capabilities(self) -> ImportCapabilities: ...

    async def get_watch_history(self, since: Optional[datetime] = None) -> List[WatchEvent]: ...

    async def get_ratings(self) -> List[Rating]: ...

    async def get_watchlist(self) -> List[WatchlistEntry]: ...

    async def health_check(self) -> bool: ...
