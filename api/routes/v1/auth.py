"""
api/routes/v1/auth.py -- Login, current identity, and password change.

Routes:
  POST /api/v1/auth/login            -- email + password login; returns a bearer token
  GET  /api/v1/auth/me               -- current identity (requires auth)
  PUT  /api/v1/auth/change-password  -- verify old password, set new (requires auth)

Security:
  [H2] POST /login is rate-limited to 10 requests/minute per IP.
  [C1] AccountService.login() provides timing equalization -- use it, never inline.
  [M5] Cache-Control: no-store on login responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import ChangePasswordRequest, LoginRequest, LoginResponse, MessageResponse, UserResponse
from auth.accounts import AccountService
from auth.dependencies import get_current_user, status_for
from auth.exceptions import WeakPasswordError
from auth.models import AuthFailure, Identity

# Auth policy:
# - POST /api/v1/auth/login:            public -- login endpoint must be unauthenticated
# - GET  /api/v1/auth/me:               requires auth (get_current_user)
# - PUT  /api/v1/auth/change-password:  requires auth (get_current_user)
router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit("10/minute")  # [H2] must sit below @router so FastAPI registers the limited wrapper
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a signed bearer token.

    Wrong email and wrong password produce the same "bad_credentials" error.
    A deactivated account is only reported once the password has verified.
    """
    accounts: AccountService = request.app.state.accounts
    result = accounts.login(body.email, body.password)
    if isinstance(result, AuthFailure):
        resp = JSONResponse(
            status_code=status_for(result),
            content={"error": {"code": result.reason.value, "message": result.message}},
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=result.access_token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=result.expires_in,
            user=UserResponse.from_identity(result.identity),
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.get("/auth/me", response_model=UserResponse)
def me(current_user: Identity = Depends(get_current_user)) -> UserResponse:
    """Return the identity bound to the presented token."""
    return UserResponse.from_identity(current_user)


@router.put("/auth/change-password", response_model=MessageResponse)
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    current_user: Identity = Depends(get_current_user),
) -> MessageResponse:
    """Change the caller's password.

    The old password is verified first, so a stolen (unexpired) token alone
    cannot take over the account.
    """
    accounts: AccountService = request.app.state.accounts
    try:
        changed = accounts.change_password(current_user.id, body.old_password, body.new_password)
    except WeakPasswordError as exc:
        raise HTTPException(status_code=400, detail={"code": "weak_password", "message": str(exc)}) from exc
    if not changed:
        raise HTTPException(
            status_code=400,
            detail={"code": "bad_credentials", "message": "Old password is incorrect."},
        )
    return MessageResponse(message="Password changed successfully.")
