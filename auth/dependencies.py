"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and authorization.

Tokens are read from the Authorization: Bearer <token> header. The gate and
policy functions return typed decisions; this module is the one place where
a denial turns into an HTTPException:

  MISSING_CREDENTIAL / INVALID_TOKEN / ACCOUNT_DEACTIVATED / UNAUTHENTICATED -> 401
  ROLE_NOT_PERMITTED / NOT_RESOURCE_OWNER                                    -> 403

get_current_user() raises 401 if the request is not authenticated.
require_roles(...) builds a dependency that additionally raises 403 when the
  caller's role is not in the allow-list.
require_owner_or_role(...) builds a dependency that reads the resource owner
  id from a path or query parameter and raises 403 unless the caller owns it
  or holds an override role.

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import NoReturn

from fastapi import Depends, HTTPException, Request

from auth.gate import AuthenticationGate
from auth.models import AuthFailure, FailureReason, Identity, Role
from auth.policy import DEFAULT_OVERRIDE_ROLES
from auth.policy import require_owner_or_role as decide_owner_or_role
from auth.policy import require_role as decide_role

logger = logging.getLogger("staffdesk.auth")

_FORBIDDEN = {FailureReason.ROLE_NOT_PERMITTED, FailureReason.NOT_RESOURCE_OWNER}


def status_for(failure: AuthFailure) -> int:
    """HTTP status code for a denial."""
    return 403 if failure.reason in _FORBIDDEN else 401


def raise_for(failure: AuthFailure) -> NoReturn:
    """Turn an AuthFailure into the matching HTTPException."""
    status_code = status_for(failure)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    raise HTTPException(
        status_code=status_code,
        detail={"code": failure.reason.value, "message": failure.message},
        headers=headers,
    )


def _bearer_token(request: Request) -> str | None:
    # The auth scheme is case-insensitive (RFC 7235).
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer":
        return credentials
    return None


def get_current_user(request: Request) -> Identity:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: Identity = Depends(get_current_user)): ...
    """
    gate: AuthenticationGate = request.app.state.gate
    result = gate.resolve(_bearer_token(request))
    if isinstance(result, AuthFailure):
        raise_for(result)
    return result


def require_roles(*roles: Role | str) -> Callable[..., Identity]:
    """Build a dependency that admits only the given roles.

    Use as a FastAPI dependency:
        @router.get("/users")
        def route(user: Identity = Depends(require_roles(Role.CEO, Role.HR))): ...
    """
    allowed = frozenset(Role(r) for r in roles)

    def dependency(current_user: Identity = Depends(get_current_user)) -> Identity:
        decision = decide_role(current_user, allowed)
        if isinstance(decision, AuthFailure):
            logger.info("Role check denied %s (%s)", current_user.id, current_user.role.value)
            raise_for(decision)
        return current_user

    return dependency


def require_owner_or_role(
    owner_param: str = "user_id",
    override_roles: Iterable[Role | str] = DEFAULT_OVERRIDE_ROLES,
) -> Callable[..., Identity]:
    """Build a dependency that admits the resource owner or an override role.

    owner_param names the path parameter (or, failing that, query parameter)
    holding the owner's identity id. An absent parameter is a denial.
    """
    overrides = frozenset(Role(r) for r in override_roles)

    def dependency(request: Request, current_user: Identity = Depends(get_current_user)) -> Identity:
        owner_id = request.path_params.get(owner_param) or request.query_params.get(owner_param)
        decision = decide_owner_or_role(current_user, owner_id, overrides)
        if isinstance(decision, AuthFailure):
            logger.info("Ownership check denied %s on %s", current_user.id, request.url.path)
            raise_for(decision)
        return current_user

    return dependency
