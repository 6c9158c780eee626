"""Pydantic schemas for admin account management."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from campadmin.models.admin_user import AdminRole

USERNAME_PATTERN = r"^[a-zA-Z][a-zA-Z0-9_.-]*$"


class AdminCreate(BaseModel):
    """Request to create an admin account."""

    username: str = Field(
        ...,
        min_length=6,
        max_length=50,
        pattern=USERNAME_PATTERN,
        description="Username (6-50 chars, must start with a letter)",
    )
    password: str = Field(..., min_length=8, max_length=128)
    display_name: str = Field(..., min_length=1, max_length=100)
    role: AdminRole = AdminRole.ADMIN


class AdminUpdate(BaseModel):
    """Partial update of an admin account. Omitted fields are unchanged."""

    username: str | None = Field(None, min_length=6, max_length=50, pattern=USERNAME_PATTERN)
    password: str | None = Field(None, min_length=8, max_length=128)
    display_name: str | None = Field(None, min_length=1, max_length=100)
    role: AdminRole | None = None


class AdminResponse(BaseModel):
    """Admin account as returned by the management API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    display_name: str
    role: AdminRole
    last_login_at: datetime | None
    created_at: datetime


class AdminListResponse(BaseModel):
    items: list[AdminResponse]
    total: int
