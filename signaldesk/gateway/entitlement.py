"""Entitlement policy — per-request access state and route-class checks."""

from enum import Enum

from signaldesk.errors import AuthRequired, SubscriptionRequired
from signaldesk.models import CallerIdentity


class AccessState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_UNSUBSCRIBED = "authenticated_unsubscribed"
    AUTHENTICATED_SUBSCRIBED = "authenticated_subscribed"


class RouteClass(str, Enum):
    PUBLIC = "public"
    PREMIUM = "premium"


def access_state(identity: CallerIdentity) -> AccessState:
    """Classify *identity*; computed fresh for every request."""
    if not identity.is_authenticated:
        return AccessState.UNAUTHENTICATED
    if identity.is_subscribed:
        return AccessState.AUTHENTICATED_SUBSCRIBED
    return AccessState.AUTHENTICATED_UNSUBSCRIBED


def authorize(identity: CallerIdentity, route_class: RouteClass) -> AccessState:
    """Return the caller's access state or raise when *route_class* forbids it.

    Raises:
        AuthRequired: premium route, no valid credential.
        SubscriptionRequired: premium route, tier is not active/trialing.
    """
    state = access_state(identity)
    if route_class is RouteClass.PUBLIC:
        return state
    if state is AccessState.UNAUTHENTICATED:
        raise AuthRequired("Authentication required.")
    if state is AccessState.AUTHENTICATED_UNSUBSCRIBED:
        raise SubscriptionRequired("Subscription required.")
    return state


def require_authenticated(identity: CallerIdentity) -> None:
    """Raise ``AuthRequired`` for anonymous callers (account routes)."""
    if access_state(identity) is AccessState.UNAUTHENTICATED:
        raise AuthRequired("Authentication required.")
