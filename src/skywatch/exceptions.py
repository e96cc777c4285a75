"""Application exception classes."""

from __future__ import annotations


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""


class StoreError(Exception):
    """Raised when the persisted key-value store cannot be read or written."""


class NotificationError(Exception):
    """Raised by a notification sink when delivery could not be attempted."""


class WeatherGatewayError(Exception):
    """Base class for weather provider request and decoding failures."""


class InvalidEndpointError(WeatherGatewayError):
    """Raised when a request URL cannot be constructed from the inputs."""


class UpstreamStatusError(WeatherGatewayError):
    """Raised when the provider answers with a status outside 200-299."""

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(WeatherGatewayError):
    """Raised when a response body does not match the expected schema."""


class NetworkError(WeatherGatewayError):
    """Raised for transport-level failures (DNS, connect, timeouts)."""


class MissingCredentialsError(WeatherGatewayError):
    """Raised when a keyed provider is used without station id or API key."""
