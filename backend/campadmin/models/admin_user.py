"""Admin account model."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from campadmin.models.base import BaseModel


class AdminRole(StrEnum):
    """Roles an admin account can hold, most privileged first."""

    SUPER_ADMIN = "super-admin"
    ADMIN = "admin"
    EDITOR = "editor"


class AdminUser(BaseModel):
    """Administrator of the storefront back office.

    The role is only ever changed by a super-admin through the account
    management routes.
    """

    __tablename__ = "admin_users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('super-admin', 'admin', 'editor')",
            name="ck_admin_users_role",
        ),
    )

    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=AdminRole.ADMIN.value)

    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<AdminUser {self.username} ({self.role})>"
