from __future__ import annotations


class HimawariError(Exception):
    """Base class for failures while retrieving satellite imagery."""


class TransportError(HimawariError):
    """Raised when a tile or metadata endpoint cannot be reached."""


class ProtocolError(HimawariError):
    """Raised when an endpoint answers with a non-success status."""

    def __init__(self, status_code: int, url: str) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(f"request to {url} failed with status {status_code}")


class DecodeError(HimawariError):
    """Raised when a payload is not a valid image or JSON document."""


class TimeParseError(HimawariError):
    """Raised when the latest-image timestamp has an unexpected format."""


class ConfigurationError(HimawariError):
    """Raised when the runtime environment cannot support a request."""
