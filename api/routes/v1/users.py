"""
api/routes/v1/users.py -- Identity management REST endpoints.

Routes:
  POST  /api/v1/users                     -- create an identity (CEO, HR)
  GET   /api/v1/users                     -- list identities (CEO, HR)
  GET   /api/v1/users/{user_id}           -- one identity (owner, or CEO/HR)
  GET   /api/v1/users/{user_id}/reports   -- Junior reports of a manager (owner, or CEO/HR)
  PATCH /api/v1/users/{user_id}           -- activate / deactivate (CEO, HR)

Security:
  [M4] PATCH /users/{id} blocks self-deactivation.
  Ownership is decided by auth.policy.require_owner_or_role with the path
  parameter as the resource owner. A Senior does not gain access to a
  report's record through the reporting chain.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import UserCreate, UserPatch, UserResponse
from auth.accounts import AccountService
from auth.dependencies import require_owner_or_role, require_roles
from auth.exceptions import DuplicateEmailError, IdentityValidationError, WeakPasswordError
from auth.models import Identity, Role

# Auth policy:
# - POST  /api/v1/users:                    CEO or HR (require_roles)
# - GET   /api/v1/users:                    CEO or HR (require_roles)
# - GET   /api/v1/users/{user_id}:          owner or CEO/HR (require_owner_or_role)
# - GET   /api/v1/users/{user_id}/reports:  owner or CEO/HR (require_owner_or_role)
# - PATCH /api/v1/users/{user_id}:          CEO or HR (require_roles)
router = APIRouter()

_require_privileged = require_roles(Role.CEO, Role.HR)
_require_owner = require_owner_or_role("user_id")


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    current_user: Identity = Depends(_require_privileged),
) -> UserResponse:
    """Create a new identity. CEO/HR only.

    A Junior without a manager, or with a manager id that does not exist, is
    rejected with 422 before anything is written.
    """
    accounts: AccountService = request.app.state.accounts
    try:
        created = accounts.register(
            email=body.email,
            password=body.password,
            role=body.role,
            manager_id=body.manager_id,
            name=body.name,
            department=body.department,
            position=body.position,
            phone=body.phone,
            address=body.address,
            date_of_birth=body.date_of_birth.isoformat() if body.date_of_birth else None,
            hire_date=body.hire_date.isoformat(),
            avatar=body.avatar,
        )
    except DuplicateEmailError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "An account with that email already exists."},
        ) from exc
    except (IdentityValidationError, WeakPasswordError) as exc:
        raise HTTPException(status_code=422, detail={"code": "invalid_identity", "message": str(exc)}) from exc
    return UserResponse.from_identity(created)


@router.get("/users", response_model=list[UserResponse])
def list_users(
    request: Request,
    current_user: Identity = Depends(_require_privileged),
) -> list[UserResponse]:
    """List all identities. CEO/HR only."""
    accounts: AccountService = request.app.state.accounts
    return [UserResponse.from_identity(i) for i in accounts.list_all()]


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    request: Request,
    user_id: str,
    current_user: Identity = Depends(_require_owner),
) -> UserResponse:
    """Return one identity. The caller must be that identity, or CEO/HR."""
    accounts: AccountService = request.app.state.accounts
    return UserResponse.from_identity(_get_or_404(accounts, user_id))


@router.get("/users/{user_id}/reports", response_model=list[UserResponse])
def list_reports(
    request: Request,
    user_id: str,
    current_user: Identity = Depends(_require_owner),
) -> list[UserResponse]:
    """List the identities reporting to user_id."""
    accounts: AccountService = request.app.state.accounts
    _get_or_404(accounts, user_id)
    return [UserResponse.from_identity(i) for i in accounts.list_reports(user_id)]


@router.patch("/users/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: str,
    body: UserPatch,
    current_user: Identity = Depends(_require_privileged),
) -> UserResponse:
    """Activate or deactivate an identity. CEO/HR only.

    Deactivation takes effect on the next request: the gate refuses every
    token bound to a deactivated identity, even unexpired ones.
    """
    accounts: AccountService = request.app.state.accounts
    target = _get_or_404(accounts, user_id)

    if body.is_active is None:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )
    # [M4] Block self-deactivation
    if not body.is_active and target.id == current_user.id:
        raise HTTPException(
            status_code=400,
            detail={"code": "self_deactivation", "message": "You cannot deactivate your own account."},
        )

    updated = accounts.set_active(user_id, body.is_active)
    if updated is None:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "User not found."})
    return UserResponse.from_identity(updated)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_or_404(accounts: AccountService, user_id: str) -> Identity:
    identity = accounts.get(user_id)
    if identity is None:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "User not found."})
    return identity
