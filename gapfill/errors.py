"""Error taxonomy for the gap-fill workflow."""
from __future__ import annotations

from typing import Any, Optional


class GapFillError(Exception):
    pass


class ValidationError(GapFillError):
    """Required input missing; raised before any network call."""


class TransportError(GapFillError):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class ParseError(GapFillError):
    pass


class InvalidTimestamp(ParseError):
    pass


class UnparseableLink(ParseError):
    pass


class InvalidDateFormat(ParseError):
    pass


class ResolutionError(GapFillError):
    pass


class UnresolvedProvider(ResolutionError):
    pass


class ConcurrencyGuardError(GapFillError):
    """A send is already in flight for this client."""

    def __init__(self, client_id: str) -> None:
        super().__init__(f"Send already in flight for client {client_id}")
        self.client_id = client_id


class OverrideNotAllowedError(RuntimeError):
    """The non-production override was requested in production."""
