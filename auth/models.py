"""
auth/models.py -- Domain dataclasses for identity and access decisions.

Pattern: Data class. These types own the domain shape; the store, gate, and
policy modules do the work. The only logic here is construction-time
validation -- an Identity that violates its invariants cannot exist.

Decision values (Allowed / AuthFailure) are returned, never raised. Every
caller has to look at the result before it can proceed.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from auth.exceptions import IdentityValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class Role(str, Enum):
    """Closed set of organizational roles. Exactly one per identity."""

    CEO = "CEO"
    HR = "HR"
    SENIOR = "Senior"
    JUNIOR = "Junior"


def new_identity_id() -> str:
    return uuid.uuid4().hex


def normalize_email(email: str) -> str:
    """Canonical form of a login email: trimmed and lowercased."""
    return (email or "").strip().lower()


@dataclass
class Identity:
    """One human account: credentials, role, and reporting-chain link.

    password_hash is None on sanitized copies handed to routes and business
    collaborators (see AuthenticationGate.resolve). It is never compared by
    equality -- only through PasswordHasher.verify().

    manager_id is required for Junior identities. It is a relation, not
    ownership: the policy engine never traverses it.
    """

    email: str
    role: Role
    password_hash: str | None = None
    manager_id: str | None = None
    id: str = field(default_factory=new_identity_id)
    name: str = ""
    department: str | None = None
    position: str | None = None
    phone: str | None = None
    address: str | None = None
    date_of_birth: str | None = None  # ISO 8601 date
    hire_date: str | None = None  # ISO 8601 date
    avatar: str | None = None  # image URL
    is_active: bool = True
    last_login: str | None = None  # ISO 8601, advisory only
    created_at: str | None = None  # ISO 8601, set by store on insert

    def __post_init__(self) -> None:
        try:
            self.role = Role(self.role)
        except ValueError as exc:
            raise IdentityValidationError(f"Unknown role: {self.role!r}") from exc

        self.email = normalize_email(self.email)
        if not _EMAIL_RE.match(self.email):
            raise IdentityValidationError("A valid email address is required.")

        if not self.id:
            raise IdentityValidationError("Identity id must not be empty.")

        self.manager_id = self.manager_id or None
        if self.role is Role.JUNIOR and self.manager_id is None:
            raise IdentityValidationError("A Junior identity requires a manager.")
        if self.manager_id is not None and self.manager_id == self.id:
            raise IdentityValidationError("An identity cannot be its own manager.")


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of an access token."""

    identity_id: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class AuthConfig:
    """Immutable auth configuration, built once at startup.

    Passed explicitly into PasswordHasher and TokenService so both are pure
    functions of (input, config) and tests can inject their own secret/cost.
    """

    secret_key: str
    token_expire_seconds: int = 86400
    bcrypt_rounds: int = 12

    def __post_init__(self) -> None:
        if len(self.secret_key) < 32:
            raise ValueError("secret_key must be at least 32 characters.")
        if self.token_expire_seconds <= 0:
            raise ValueError("token_expire_seconds must be positive.")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31.")


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------


class FailureReason(str, Enum):
    """Machine-readable reason attached to every denial."""

    MISSING_CREDENTIAL = "missing_credential"
    INVALID_TOKEN = "invalid_token"  # malformed, forged, and expired all map here
    ACCOUNT_DEACTIVATED = "account_deactivated"
    UNAUTHENTICATED = "unauthenticated"
    ROLE_NOT_PERMITTED = "role_not_permitted"
    NOT_RESOURCE_OWNER = "not_resource_owner"
    BAD_CREDENTIALS = "bad_credentials"  # login only


_MESSAGES: dict[FailureReason, str] = {
    FailureReason.MISSING_CREDENTIAL: "Access denied. No token provided.",
    FailureReason.INVALID_TOKEN: "Invalid token.",
    FailureReason.ACCOUNT_DEACTIVATED: "Account is deactivated.",
    FailureReason.UNAUTHENTICATED: "Authentication required.",
    FailureReason.NOT_RESOURCE_OWNER: "Access denied. You can only access your own resources.",
    FailureReason.BAD_CREDENTIALS: "Invalid email or password.",
}


@dataclass(frozen=True)
class AuthFailure:
    """A terminal denial. role is set only for ROLE_NOT_PERMITTED."""

    reason: FailureReason
    role: Role | None = None

    @property
    def message(self) -> str:
        if self.reason is FailureReason.ROLE_NOT_PERMITTED:
            role = self.role.value if self.role is not None else "unknown"
            return f"Access denied. {role} role is not authorized."
        return _MESSAGES[self.reason]


@dataclass(frozen=True)
class Allowed:
    """A passing authorization decision for the given identity."""

    identity: Identity
