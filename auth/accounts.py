"""
auth/accounts.py -- Account operations built on the store, hasher and tokens.

These are the write-side and login operations that sit around the core
authentication/authorization decisions:

  register()                -- validate, hash, and store a new identity
  login()                   -- verify email + password, stamp last_login, issue a token
  change_password()         -- verify the old password, store a new digest
  set_active()              -- deactivate / reactivate
  list_reports()            -- Junior identities reporting to a manager
  ensure_bootstrap_admin()  -- create the first CEO account from configuration

Security notes:
  [C1] login() always runs one bcrypt verification, whether or not the email
       exists. Unknown email and wrong password return the same
       BAD_CREDENTIALS failure in the same time.
  [C2] ACCOUNT_DEACTIVATED is only reported after the password verified, so
       the deactivated state does not leak to someone without the password.

Everything handed back to callers has password_hash stripped.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import date

from auth.exceptions import WeakPasswordError
from auth.models import AuthFailure, FailureReason, Identity, Role
from auth.passwords import PasswordHasher
from auth.store import IdentityStore
from auth.tokens import TokenService

logger = logging.getLogger("staffdesk.auth.accounts")

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72  # bcrypt input limit


@dataclass(frozen=True)
class LoginResult:
    identity: Identity
    access_token: str
    expires_in: int


def check_password_policy(password: str) -> None:
    """Raise WeakPasswordError if password is unacceptable."""
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise WeakPasswordError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")


def _public(identity: Identity) -> Identity:
    return dataclasses.replace(identity, password_hash=None)


class AccountService:
    """Account operations. Stateless apart from its collaborators."""

    def __init__(self, store: IdentityStore, hasher: PasswordHasher, tokens: TokenService) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens

    def register(
        self,
        email: str,
        password: str,
        role: Role | str,
        manager_id: str | None = None,
        **profile,
    ) -> Identity:
        """Create a new identity.

        The identity shape (role, email, Junior manager) is validated before
        the password is hashed, and the manager reference is resolved by the
        store before the insert. Nothing is written on any failure.

        Raises IdentityValidationError, WeakPasswordError, DuplicateEmailError.
        """
        draft = Identity(email=email, role=role, manager_id=manager_id, **profile)
        check_password_policy(password)
        identity = dataclasses.replace(draft, password_hash=self.hasher.hash(password))
        stored = self.store.save(identity)
        logger.info("Identity %s created (role=%s)", stored.id, stored.role.value)
        return _public(stored)

    def login(self, email: str, password: str) -> LoginResult | AuthFailure:
        """Verify credentials and issue a token. See [C1] and [C2]."""
        identity = self.store.find_by_email(email)
        if identity is None:
            self.hasher.equalize(password)  # [C1]
            return AuthFailure(FailureReason.BAD_CREDENTIALS)
        if not self.hasher.verify(password, identity.password_hash):
            logger.info("Failed login for identity %s", identity.id)
            return AuthFailure(FailureReason.BAD_CREDENTIALS)
        if not identity.is_active:  # [C2]
            return AuthFailure(FailureReason.ACCOUNT_DEACTIVATED)

        self.store.update_last_login(identity.id)
        refreshed = self.store.find_by_id(identity.id) or identity
        token = self.tokens.issue(identity.id)
        logger.info("Identity %s logged in", identity.id)
        return LoginResult(identity=_public(refreshed), access_token=token, expires_in=self.tokens.expires_in)

    def change_password(self, identity_id: str, old_password: str, new_password: str) -> bool:
        """Replace the password. Returns False if old_password does not verify.

        Raises WeakPasswordError if new_password fails the policy.
        """
        identity = self.store.find_by_id(identity_id)
        if identity is None or not self.hasher.verify(old_password, identity.password_hash):
            return False
        check_password_policy(new_password)
        self.store.set_password_hash(identity_id, self.hasher.hash(new_password))
        logger.info("Password changed for identity %s", identity_id)
        return True

    def set_active(self, identity_id: str, active: bool) -> Identity | None:
        """Activate or deactivate. Returns the updated identity, or None if not found."""
        if not self.store.set_active(identity_id, active):
            return None
        logger.info("Identity %s %s", identity_id, "activated" if active else "deactivated")
        identity = self.store.find_by_id(identity_id)
        return _public(identity) if identity is not None else None

    def get(self, identity_id: str) -> Identity | None:
        identity = self.store.find_by_id(identity_id)
        return _public(identity) if identity is not None else None

    def list_all(self) -> list[Identity]:
        return [_public(i) for i in self.store.list_identities()]

    def list_reports(self, manager_id: str) -> list[Identity]:
        return [_public(i) for i in self.store.list_reports(manager_id)]

    def ensure_bootstrap_admin(self, email: str, password: str) -> bool:
        """Create a CEO account with these credentials unless the email is taken.

        Returns True if an account was created. Blank configuration is a no-op.
        """
        if not email or not password:
            return False
        if self.store.find_by_email(email) is not None:
            logger.info("Bootstrap admin already exists")
            return False
        self.register(
            email=email,
            password=password,
            role=Role.CEO,
            name="Admin",
            hire_date=date.today().isoformat(),
        )
        logger.info("Bootstrap admin created")
        return True
