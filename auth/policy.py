"""
auth/policy.py -- Authorization decisions over an already-resolved identity.

Two independent checks, both pure functions of (identity, request, config):

  require_role()           -- role allow-list. Pure set membership.
  require_owner_or_role()  -- privileged roles bypass; everyone else must own
                              the resource (exact id match).

Neither check consults the reporting chain. A Senior gets no access to a
Junior report's resources through require_owner_or_role(); only the
override-role set bypasses ownership.

Both return Allowed or AuthFailure. Neither raises for a denial, and neither
can fail open: every path that is not an explicit Allowed is a denial.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from collections.abc import Iterable

from auth.models import Allowed, AuthFailure, FailureReason, Identity, Role

DEFAULT_OVERRIDE_ROLES: frozenset[Role] = frozenset({Role.CEO, Role.HR})


def _as_roles(roles: Iterable[Role | str]) -> frozenset[Role]:
    # Role(...) raises ValueError on an unknown string -- a typo in a route's
    # allow-list must fail loudly, not silently deny everyone.
    return frozenset(Role(r) for r in roles)


def require_role(identity: Identity | None, roles: Iterable[Role | str]) -> Allowed | AuthFailure:
    """Allow iff identity.role is in roles."""
    allowed = _as_roles(roles)
    if identity is None:
        return AuthFailure(FailureReason.UNAUTHENTICATED)
    if identity.role in allowed:
        return Allowed(identity)
    return AuthFailure(FailureReason.ROLE_NOT_PERMITTED, role=identity.role)


def require_owner_or_role(
    identity: Identity | None,
    resource_owner_id: str | None,
    override_roles: Iterable[Role | str] = DEFAULT_OVERRIDE_ROLES,
) -> Allowed | AuthFailure:
    """Allow if identity holds an override role, or owns the resource.

    resource_owner_id is supplied by the caller. This module never guesses
    which field of a business entity is the owner. A missing owner id is a
    denial for non-privileged identities.
    """
    overrides = _as_roles(override_roles)
    if identity is None:
        return AuthFailure(FailureReason.UNAUTHENTICATED)
    if identity.role in overrides:
        return Allowed(identity)
    if resource_owner_id and identity.id == str(resource_owner_id):
        return Allowed(identity)
    return AuthFailure(FailureReason.NOT_RESOURCE_OWNER)
