"""Domain models — typed representations of accounts, callers and signal records."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class EntitlementTier(str, Enum):
    """Subscription standing of a caller."""

    ANONYMOUS = "anonymous"
    REGISTERED = "registered"
    TRIALING = "trialing"
    ACTIVE = "active"


SUBSCRIBED_TIERS = frozenset({EntitlementTier.ACTIVE, EntitlementTier.TRIALING})


@dataclass(frozen=True)
class Account:
    """A row from the account store."""

    id: int
    email: str
    api_key: Optional[str]
    subscription_status: str
    is_active: bool

    @property
    def tier(self) -> EntitlementTier:
        status = (self.subscription_status or "").lower()
        if status == EntitlementTier.ACTIVE.value:
            return EntitlementTier.ACTIVE
        if status == EntitlementTier.TRIALING.value:
            return EntitlementTier.TRIALING
        return EntitlementTier.REGISTERED


@dataclass(frozen=True)
class CallerIdentity:
    """Request-scoped caller identity.  Never stored across requests."""

    id: Optional[int]
    tier: EntitlementTier

    @classmethod
    def anonymous(cls) -> "CallerIdentity":
        return cls(id=None, tier=EntitlementTier.ANONYMOUS)

    @property
    def is_authenticated(self) -> bool:
        return self.tier is not EntitlementTier.ANONYMOUS

    @property
    def is_subscribed(self) -> bool:
        return self.tier in SUBSCRIBED_TIERS


@dataclass(frozen=True)
class RequestCredential:
    """Credential material presented with one request."""

    api_key: Optional[str] = None
    bearer_token: Optional[str] = None


@dataclass(frozen=True)
class SignalPoint:
    """One model output for one asset at one timeframe."""

    asset: str
    timeframe: str
    signal_value: int  # -1 SELL, 0 WAIT, 1 BUY
    generated_at: datetime
    last_updated_at: datetime


@dataclass(frozen=True)
class CurrentSignal:
    """Latest live-log entry for a symbol."""

    symbol: str
    time: datetime
    entry_price: Optional[float]
    pred_dir: int


@dataclass(frozen=True)
class HistoricalTradeRecord:
    """A resolved or pending signal outcome."""

    time: datetime
    asset: str
    timeframe: str
    direction: Any  # "BUY"/"SELL" or ±1
    entry_price: Optional[float]
    exit_price: Optional[float]
    outcome: str  # "WIN", "LOSS" or "PENDING"


@dataclass(frozen=True)
class LivePredictionRecord:
    """A real-time directional call.  ``predicted_direction == 0`` is flat."""

    time: datetime
    predicted_direction: int
    entry_price: Optional[float]
    exit_price: Optional[float]
    pnl_percent: Optional[float]
    symbol: str = ""


# ── Direction helpers ────────────────────────────────────────────────────

_LONG_ALIASES = frozenset({"BUY", "LONG", "UP", "1", "+1"})
_SHORT_ALIASES = frozenset({"SELL", "SHORT", "DOWN", "-1"})


def normalize_direction(value: Any) -> int:
    """Map a direction label or number to 1 (long), -1 (short) or 0 (flat)."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        if value > 0:
            return 1
        if value < 0:
            return -1
        return 0
    if isinstance(value, str):
        label = value.strip().upper()
        if label in _LONG_ALIASES:
            return 1
        if label in _SHORT_ALIASES:
            return -1
    return 0
