"""
auth/passwords.py -- One-way salted password hashing (bcrypt).

Security design decisions:
  bcrypt is used directly (no passlib wrapper). Each hash() call draws a fresh
  random salt from bcrypt.gensalt(); the salt and cost factor are embedded in
  the digest, so verify() needs nothing but the digest itself.

  The cost factor comes from AuthConfig.bcrypt_rounds, fixed at startup.
  Production default is 12; tests inject 4 (bcrypt's minimum).

  verify() never raises. A malformed digest (corrupt row, wrong scheme) is a
  failed verification, not a crash.

  equalize() runs a verification against a dummy digest. Login calls it when
  the email is unknown so response time does not reveal whether an account
  exists.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from functools import cached_property

import bcrypt

from auth.models import AuthConfig


class PasswordHasher:
    """Hash and verify passwords at a fixed, configured bcrypt cost.

    Usage:
        hasher = PasswordHasher(AuthConfig(secret_key=..., bcrypt_rounds=12))
        digest = hasher.hash("s3cret!")
        hasher.verify("s3cret!", digest)   # True
    """

    def __init__(self, config: AuthConfig) -> None:
        self.rounds = config.bcrypt_rounds

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt digest of plaintext.

        bcrypt rejects inputs over 72 bytes; AccountService enforces that
        limit before calling this.
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("utf-8")

    def verify(self, plaintext: str, digest: str | None) -> bool:
        """Return True if plaintext matches digest. Constant-time; never raises."""
        if not isinstance(plaintext, str) or not isinstance(digest, str) or not digest:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            return False

    @cached_property
    def _dummy_digest(self) -> str:
        return self.hash("staffdesk_timing_dummy")

    def equalize(self, plaintext: str) -> None:
        """Spend one verification's worth of work and discard the result."""
        self.verify(plaintext, self._dummy_digest)
