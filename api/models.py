"""
API request and response models for StaffDesk REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Role fields use the auth.models.Role enum directly, so an unknown role string
is rejected here with 422 before it reaches any auth code.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import Identity, Role

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    Neither field is stripped here. The password is verified exactly as
    typed, and the email is normalized by the auth layer.
    """

    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(min_length=1, max_length=255)
    new_password: str = Field(min_length=6, max_length=72)


class UserCreate(BaseModel):
    """Request body for POST /api/v1/users.

    manager_id is required for Junior accounts; that rule is enforced by the
    Identity dataclass so the API and every other entry point share it.

    Profile text fields are trimmed; the password is stored exactly as sent.
    hire_date defaults to the day the account is created.
    """

    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6, max_length=72)
    role: Role = Role.JUNIOR
    manager_id: Optional[str] = None
    name: str = Field(min_length=1, max_length=50)
    department: Optional[str] = Field(default=None, max_length=100)
    position: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=32)
    address: Optional[str] = Field(default=None, max_length=255)
    date_of_birth: Optional[date] = None
    hire_date: date = Field(default_factory=date.today)
    avatar: Optional[str] = Field(default=None, max_length=500)

    @field_validator("manager_id", "name", "department", "position", "phone", "address", "avatar", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class UserPatch(BaseModel):
    """Request body for PATCH /api/v1/users/{id}. Only activation is mutable here."""

    is_active: Optional[bool] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of an identity. Never carries the password hash."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    role: Role
    manager_id: Optional[str] = None
    name: str = ""
    department: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[str] = None
    hire_date: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool
    last_login: Optional[str] = None
    created_at: str = ""

    @classmethod
    def from_identity(cls, identity: Identity) -> "UserResponse":
        return cls(
            id=identity.id,
            email=identity.email,
            role=identity.role,
            manager_id=identity.manager_id,
            name=identity.name,
            department=identity.department,
            position=identity.position,
            phone=identity.phone,
            address=identity.address,
            date_of_birth=identity.date_of_birth,
            hire_date=identity.hire_date,
            avatar=identity.avatar,
            is_active=identity.is_active,
            last_login=identity.last_login,
            created_at=identity.created_at or "",
        )


class LoginResponse(BaseModel):
    access_token: str
    token_type: str  # always "bearer"
    expires_in: int
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
