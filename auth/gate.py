"""
auth/gate.py -- Resolve an inbound bearer token into a live identity.

resolve() is the single entry point every authenticated request goes through:

  1. No token presented              -> MISSING_CREDENTIAL
  2. Token fails verification        -> INVALID_TOKEN
  3. Bound identity no longer exists -> INVALID_TOKEN (not "not found")
  4. Identity is deactivated         -> ACCOUNT_DEACTIVATED
  5. Otherwise                       -> the Identity, password_hash stripped

Steps 2 and 3 share one failure so a caller cannot tell a forged token from
an expired one, or a deleted account from a bad signature.

The gate only reads. last_login is stamped by AccountService.login(), not
on every request.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import dataclasses
import logging

from auth.models import AuthFailure, FailureReason, Identity
from auth.store import IdentityStore
from auth.tokens import TokenService

logger = logging.getLogger("staffdesk.auth.gate")


class AuthenticationGate:
    def __init__(self, store: IdentityStore, tokens: TokenService) -> None:
        self._store = store
        self._tokens = tokens

    def resolve(self, raw_token: str | None) -> Identity | AuthFailure:
        """Return the active identity bound to raw_token, or the reason it was refused."""
        if raw_token is None or not raw_token.strip():
            return AuthFailure(FailureReason.MISSING_CREDENTIAL)

        claims = self._tokens.verify(raw_token.strip())
        if isinstance(claims, AuthFailure):
            return claims

        identity = self._store.find_by_id(claims.identity_id)
        if identity is None:
            logger.info("Token for unknown identity rejected")
            return AuthFailure(FailureReason.INVALID_TOKEN)

        if not identity.is_active:
            logger.info("Token for deactivated identity %s rejected", identity.id)
            return AuthFailure(FailureReason.ACCOUNT_DEACTIVATED)

        return dataclasses.replace(identity, password_hash=None)
