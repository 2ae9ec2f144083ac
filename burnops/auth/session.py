"""
Session/identity gate.

Holds the operator's session token and answers "who is signed in right now".
Anything wrong with the session reads as "nobody": the save path then goes
local-only. A token the provider rejects is also cleared so the operator is
not left looking signed in with a dead session.
"""
import time
from dataclasses import dataclass
from typing import Optional

import jwt
import structlog

from ..schemas.auth import Identity
from .provider import AuthProvider, AuthSessionInvalid, AuthUnavailable


logger = structlog.get_logger()

# Seconds of slack before a token's exp is treated as already expired
EXPIRY_LEEWAY_S = 30


@dataclass(frozen=True)
class Credentials:
    identity: Identity
    access_token: str


def token_expired(token: str, now: Optional[float] = None) -> bool:
    """True when the token is a JWT whose ``exp`` has passed. Opaque tokens are never 'expired' here."""
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return False
    exp = payload.get("exp")
    if exp is None:
        return False
    try:
        return float(exp) <= (now if now is not None else time.time()) + EXPIRY_LEEWAY_S
    except (TypeError, ValueError):
        return True


class SessionGate:
    def __init__(self, provider: Optional[AuthProvider]) -> None:
        self._provider = provider
        self._access_token: Optional[str] = None

    @property
    def has_session(self) -> bool:
        return self._access_token is not None

    def adopt_token(self, access_token: Optional[str]) -> None:
        """Install a token obtained elsewhere (e.g. by the field client)."""
        self._access_token = access_token or None

    async def sign_in(self, email: str, password: str) -> Identity:
        if self._provider is None:
            raise AuthUnavailable("no auth provider configured")
        payload = await self._provider.sign_in(email, password)
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise AuthSessionInvalid("sign-in response carried no access token")
        identity = Identity.from_provider(payload)
        self._access_token = token
        logger.info("session_signed_in", user_id=identity.id)
        return identity

    async def sign_out(self) -> None:
        token, self._access_token = self._access_token, None
        if token is None or self._provider is None:
            return
        try:
            await self._provider.sign_out(token)
        except (AuthSessionInvalid, AuthUnavailable) as e:
            # Local state is already cleared; the remote session dies on its own
            logger.warning("remote_sign_out_failed", error=str(e))

    def invalidate(self, reason: str, token: Optional[str] = None) -> None:
        """Drop the session. With ``token``, only if that token is still the current one."""
        if token is not None and self._access_token != token:
            return
        logger.warning("session_cleared", reason=reason)
        self._access_token = None

    async def current_credentials(self) -> Optional[Credentials]:
        token = self._access_token
        if token is None or self._provider is None:
            return None
        if token_expired(token):
            self.invalidate("token_expired", token)
            return None
        try:
            payload = await self._provider.get_user(token)
            identity = Identity.from_provider(payload)
        except AuthSessionInvalid as e:
            self.invalidate(f"rejected: {e}", token)
            return None
        except ValueError as e:
            self.invalidate(f"malformed user payload: {e}", token)
            return None
        except AuthUnavailable as e:
            # Offline: no identity for this attempt, keep the session for later
            logger.info("identity_unavailable", error=str(e))
            return None
        # Token may have been replaced while we were waiting on the provider
        if self._access_token != token:
            return None
        return Credentials(identity=identity, access_token=token)

    async def get_current_identity(self) -> Optional[Identity]:
        creds = await self.current_credentials()
        return creds.identity if creds else None
