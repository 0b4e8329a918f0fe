from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field, field_validator

from surveyhub.core.roles import ALL_ROLE_KEYS, USER


def _validate_password_strength(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    return v


class RegisterRequest(BaseModel):
    email: EmailStr
    display_name: str = Field(..., min_length=2, max_length=200)
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password_strength(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserCreate(BaseModel):
    """Admin-side account creation with explicit roles."""

    email: EmailStr
    display_name: str = Field(..., min_length=2, max_length=200)
    password: str
    roles: list[str] = Field(default_factory=lambda: [USER])

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password_strength(v)

    @field_validator("roles")
    @classmethod
    def validate_roles(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one role is required")
        unknown = sorted(set(v) - ALL_ROLE_KEYS)
        if unknown:
            raise ValueError(f"Unknown role(s): {', '.join(unknown)}")
        return list(dict.fromkeys(v))


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: str
    email: str
    display_name: str
    is_active: bool
    roles: list[str] = []
