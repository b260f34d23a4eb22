"""
auth/tokens.py -- Signed, time-bounded identity tokens (JWT).

Security design decisions:
  JWT: python-jose with HS256. Tokens carry only the identity id (sub), the
       issue time (iat) and the expiry (exp). Role and email are NOT embedded:
       the gate reloads the identity on every request, so a role change or
       deactivation takes effect immediately.

  verify() returns a typed failure on any problem -- malformed, bad
       signature, expired, missing claims. It never raises for
       attacker-controlled input, and it never says which check failed.

  The signing key and lifetime come from AuthConfig, fixed at startup. The
       service holds no per-call state.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import jwt
from jose.exceptions import JOSEError

from auth.models import AuthConfig, AuthFailure, FailureReason, TokenClaims

logger = logging.getLogger("staffdesk.auth.tokens")

_ALGORITHM = "HS256"

_DECODE_OPTIONS = {
    "require_exp": True,
    "require_iat": True,
    "require_sub": True,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issue and verify access tokens.

    clock is injectable so tests can mint tokens that are already expired.
    Expiry checks on verify() always use real time (python-jose).
    """

    def __init__(self, config: AuthConfig, clock: Callable[[], datetime] = _utcnow) -> None:
        self._secret_key = config.secret_key
        self._expire_seconds = config.token_expire_seconds
        self._clock = clock

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds."""
        return self._expire_seconds

    def issue(self, identity_id: str) -> str:
        """Encode a signed JWT bound to identity_id."""
        if not identity_id:
            raise ValueError("identity_id must not be empty")
        issued_at = self._clock().replace(microsecond=0)
        payload = {
            "sub": identity_id,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + timedelta(seconds=self._expire_seconds)).timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> TokenClaims | AuthFailure:
        """Check signature and expiry. Returns claims or an INVALID_TOKEN failure."""
        if not isinstance(token, str) or not token:
            return AuthFailure(FailureReason.INVALID_TOKEN)
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM], options=_DECODE_OPTIONS)
            subject = payload["sub"]
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (JOSEError, KeyError, TypeError, ValueError, OverflowError):
            logger.debug("Token rejected")
            return AuthFailure(FailureReason.INVALID_TOKEN)
        if not isinstance(subject, str) or not subject:
            return AuthFailure(FailureReason.INVALID_TOKEN)
        return TokenClaims(identity_id=subject, issued_at=issued_at, expires_at=expires_at)
