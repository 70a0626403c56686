"""Domain error taxonomy and tagged sub-fetch results.

Every error a caller can see maps to exactly one HTTP status.  Credential
failures (``InvalidToken``) stay internal: the resolver collapses them to an
anonymous caller.
"""

from dataclasses import dataclass
from typing import Awaitable, Generic, TypeVar, Union

T = TypeVar("T")


class SignalDeskError(Exception):
    """Base class for errors rendered to API callers."""

    status_code: int = 500
    kind: str = "internal_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind


class AuthRequired(SignalDeskError):
    status_code = 401
    kind = "auth_required"


class SubscriptionRequired(SignalDeskError):
    status_code = 403
    kind = "subscription_required"


class ResourceInitializing(SignalDeskError):
    """Upstream has no data yet for the requested symbol."""

    status_code = 404
    kind = "initializing"


class UpstreamUnavailable(SignalDeskError):
    """Transport, status or schema failure talking to the signal source."""

    status_code = 502
    kind = "upstream_unavailable"


class ValidationError(SignalDeskError):
    status_code = 422
    kind = "validation_error"


class InvalidToken(Exception):
    """Bearer token failed signature, expiry or payload checks."""


# ── Tagged results ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    kind: str
    message: str = ""


async def capture(awaitable: Awaitable[T]) -> Union[Ok[T], Err]:
    """Await *awaitable* and tag the outcome.

    Only ``SignalDeskError`` is converted to ``Err``; anything else is a bug
    and propagates.
    """
    try:
        return Ok(await awaitable)
    except SignalDeskError as exc:
        return Err(kind=exc.kind, message=exc.message)
