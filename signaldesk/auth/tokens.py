"""Bearer token verification (HS256 JWT with a ``userId`` claim)."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from signaldesk.errors import InvalidToken

_ALGORITHM = "HS256"


class TokenVerifier:
    """Verifies and issues signed session tokens.

    Args:
        secret: Shared HMAC secret.
        ttl_seconds: Lifetime of issued tokens.
    """

    def __init__(self, secret: str, ttl_seconds: int = 3600) -> None:
        self._secret = secret
        self._ttl_seconds = ttl_seconds

    def verify(self, token: str) -> int:
        """Return the account id carried by *token*.

        Raises ``InvalidToken`` on a bad signature, expiry, or a payload
        without an integer ``userId``.
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[_ALGORITHM])
        except jwt.PyJWTError as exc:
            raise InvalidToken(str(exc)) from exc

        user_id = payload.get("userId")
        if isinstance(user_id, bool):
            raise InvalidToken("userId claim is not an integer")
        try:
            return int(user_id)
        except (TypeError, ValueError) as exc:
            raise InvalidToken("userId claim is not an integer") from exc

    def issue(self, user_id: int, ttl_seconds: Optional[int] = None) -> str:
        """Sign a token for *user_id*; *ttl_seconds* overrides the default lifetime."""
        if ttl_seconds is None:
            ttl_seconds = self._ttl_seconds
        payload = {
            "userId": user_id,
            "exp": datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds),
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)
