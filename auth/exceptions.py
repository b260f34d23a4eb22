"""
auth/exceptions.py -- Errors raised by account management operations.

Authentication and authorization never raise these; they return AuthFailure
values. These exceptions cover writes: creating accounts and changing
passwords, where the caller submitted something that cannot be stored.

All subclass ValueError so callers that only care about "bad input" can
catch one type.
"""


class IdentityValidationError(ValueError):
    """The identity record violates a construction invariant."""


class DuplicateEmailError(ValueError):
    """An identity with the same (case-insensitive) email already exists."""


class WeakPasswordError(ValueError):
    """The submitted password does not meet the password policy."""
