"""Pydantic schemas for authentication API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from campadmin.models.admin_user import AdminRole


class LoginRequest(BaseModel):
    """Request for login."""

    username: str = Field(..., min_length=6, max_length=50)
    password: str = Field(..., min_length=8, max_length=128)


class AdminSummary(BaseModel):
    """Identity fields safe to return to any authenticated caller."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    role: AdminRole


class TokenResponse(BaseModel):
    """Response with a session token."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token expiry in seconds")
    admin: AdminSummary


class VerifyResponse(BaseModel):
    """Response for token verification."""

    valid: bool = True
    admin: AdminSummary


class ProfileResponse(BaseModel):
    """The caller's own account (never includes the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    display_name: str
    role: AdminRole
    last_login_at: datetime | None
    created_at: datetime


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
