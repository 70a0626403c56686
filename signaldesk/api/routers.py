"""API routers — signal, performance and account endpoints.

No business logic.  Resolves the caller from request headers and delegates
to the gateway; domain errors are rendered by the handler in ``main``.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query

from signaldesk.auth.resolver import CredentialResolver, extract_credential
from signaldesk.errors import UpstreamUnavailable
from signaldesk.gateway.entitlement import access_state, require_authenticated
from signaldesk.gateway.service import SignalGateway
from signaldesk.models import CallerIdentity

logger = logging.getLogger("signaldesk")
router = APIRouter()

# ── Collaborators (set during app startup) ───────────────────────────────

_resolver: Optional[CredentialResolver] = None
_gateway: Optional[SignalGateway] = None


def configure_routers(
    resolver: Optional[CredentialResolver] = None,
    gateway: Optional[SignalGateway] = None,
) -> None:
    """Inject dependencies from the application startup.

    Args:
        resolver: A ``CredentialResolver`` (or duck-type for tests).
        gateway: A ``SignalGateway`` (or duck-type for tests).
    """
    global _resolver, _gateway  # noqa: PLW0603
    _resolver = resolver
    _gateway = gateway


def caller_identity(
    x_api_key: Optional[str] = Header(default=None),
    authorization: Optional[str] = Header(default=None),
) -> CallerIdentity:
    """Resolve the caller for this request only."""
    if _resolver is None:
        return CallerIdentity.anonymous()
    return _resolver.resolve(extract_credential(x_api_key, authorization))


def _require_gateway() -> SignalGateway:
    if _gateway is None:
        raise UpstreamUnavailable("Signal source not configured.")
    return _gateway


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/auth/me")
async def get_me(identity: CallerIdentity = Depends(caller_identity)):
    """Return the resolved caller identity."""
    require_authenticated(identity)
    return {
        "id": identity.id,
        "tier": identity.tier.value,
        "access": access_state(identity).value,
    }


@router.get("/api/signals/grid")
async def get_signal_grid(identity: CallerIdentity = Depends(caller_identity)):
    """Asset × timeframe grid of current signals (premium)."""
    return await _require_gateway().signal_grid(identity)


@router.get("/api/signals/all/current")
async def get_all_current(identity: CallerIdentity = Depends(caller_identity)):
    """Latest signal for every configured asset (premium)."""
    return await _require_gateway().current_signals(identity)


@router.get("/api/signals/{asset}/current")
async def get_current(asset: str, identity: CallerIdentity = Depends(caller_identity)):
    """Latest signal for one asset (premium)."""
    return await _require_gateway().current_signal(identity, asset)


@router.get("/api/signals/{asset}/history")
async def get_history(asset: str):
    """Accuracy and cumulative PnL over resolved historical signals."""
    return await _require_gateway().history(asset)


@router.get("/api/signals/{asset}/live")
async def get_live(asset: str):
    """Live-prediction statistics, equity curve and rows."""
    return await _require_gateway().live_performance(asset)


@router.get("/api/signals/{asset}/recent")
async def get_recent(asset: str):
    """Recent-validation statistics over the latest live predictions."""
    return await _require_gateway().recent_performance(asset)


@router.get("/api/signals/{asset}/backtest")
async def get_backtest(asset: str):
    """Backtest statistics and equity curve."""
    return await _require_gateway().backtest(asset)


@router.get("/api/signals/{asset}/status")
async def get_status(asset: str):
    """Upstream symbol status."""
    return await _require_gateway().symbol_status(asset)


@router.get("/api/signals/{asset}/fee-adjusted")
async def get_fee_adjusted(asset: str, fee: Optional[str] = Query(default=None)):
    """Live PnL after subtracting *fee* percent per non-flat trade."""
    return await _require_gateway().fee_adjusted(asset, fee)


@router.get("/api/assets/{asset}")
async def get_asset_detail(asset: str, identity: CallerIdentity = Depends(caller_identity)):
    """Asset page: backtest, recent validation, live history, current signal."""
    return await _require_gateway().asset_detail(identity, asset)
