"""Credential resolver — presented credential → request-scoped caller identity.

Stateless: every call re-reads the account store.  Verification failures
never raise; they degrade to an anonymous caller so the entitlement check
can produce the user-facing error.
"""

import logging
from typing import Optional

from signaldesk.auth.tokens import TokenVerifier
from signaldesk.errors import InvalidToken
from signaldesk.models import Account, CallerIdentity, RequestCredential
from signaldesk.repos.account_repo import AccountRepo

logger = logging.getLogger("signaldesk.auth")

_BEARER_PREFIX = "Bearer "


def extract_credential(
    api_key: Optional[str],
    authorization: Optional[str],
) -> RequestCredential:
    """Build a ``RequestCredential`` from raw header values.

    The static key takes priority; the bearer token is kept only when no
    key was presented.
    """
    if api_key and api_key.strip():
        return RequestCredential(api_key=api_key.strip())
    if authorization and authorization.startswith(_BEARER_PREFIX):
        token = authorization[len(_BEARER_PREFIX):].strip()
        if token:
            return RequestCredential(bearer_token=token)
    return RequestCredential()


class CredentialResolver:
    """Resolves credentials against the account store.

    Args:
        accounts: Account store with ``lookup_by_key`` / ``lookup_by_id``.
        verifier: ``TokenVerifier`` for bearer tokens.
    """

    def __init__(self, accounts: AccountRepo, verifier: TokenVerifier) -> None:
        self._accounts = accounts
        self._verifier = verifier

    def resolve(self, credential: RequestCredential) -> CallerIdentity:
        """Return the caller identity for *credential* (anonymous on any failure)."""
        if credential.api_key:
            return _identity_for(self._accounts.lookup_by_key(credential.api_key))

        if credential.bearer_token:
            try:
                user_id = self._verifier.verify(credential.bearer_token)
            except InvalidToken as exc:
                logger.debug("Bearer token rejected: %s", exc)
                return CallerIdentity.anonymous()
            return _identity_for(self._accounts.lookup_by_id(user_id))

        return CallerIdentity.anonymous()


def _identity_for(account: Optional[Account]) -> CallerIdentity:
    if account is None or not account.is_active:
        return CallerIdentity.anonymous()
    return CallerIdentity(id=account.id, tier=account.tier)
