"""Exceptions raised by the Hardcover import connector."""
from typing import Optional


class HardcoverError(Exception):
    """Base class for all connector errors."""


class ConfigurationError(HardcoverError):
    """API token missing or blank when an import was requested."""


class TransportError(HardcoverError):
    """Non-2xx HTTP response (other than 429) or network failure."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitExceeded(HardcoverError):
    """Every attempt was throttled with HTTP 429."""

    def __init__(self, attempts: int):
        super().__init__(f"Hardcover API rate limit exceeded after {attempts} attempts")
        self.attempts = attempts


class ApiError(HardcoverError):
    """GraphQL-level error reported inside a successful response."""

    def __init__(self, message: str):
        super().__init__(f"Hardcover GraphQL error: {message}")
        self.message = message


class UnsupportedOperation(HardcoverError):
    """Operation required by the host contract but not offered by Hardcover."""
