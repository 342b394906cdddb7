"""Exception taxonomy shared by the relay services.

Routers translate these into HTTP responses at the edge; services raise them
with the original cause chained so it reaches the logs but never the caller.
"""

from __future__ import annotations

from typing import Optional


class RelayError(Exception):
    """Base class for relay failures."""


class ValidationError(RelayError):
    """A required request field is missing or empty."""

    def __init__(self, field: str, message: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message or f"No {field} provided")


class UpstreamError(RelayError):
    """The record store or a vendor API failed or answered with an error."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None) -> None:
        self.service = service
        self.status_code = status_code
        super().__init__(message)


class StreamParseError(RelayError):
    """A streaming frame could not be decoded. Never fatal to the stream."""

    def __init__(self, frame: str, message: str = "Malformed stream frame") -> None:
        self.frame = frame
        super().__init__(message)
