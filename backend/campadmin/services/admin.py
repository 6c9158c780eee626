"""Admin account management service."""

import logging
import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from campadmin.models.admin_user import AdminRole, AdminUser
from campadmin.services.auth import hash_password

logger = logging.getLogger(__name__)


class AdminServiceError(Exception):
    """Base admin management error."""

    pass


class AdminNotFoundError(AdminServiceError):
    pass


class UsernameTakenError(AdminServiceError):
    pass


class SelfDeletionError(AdminServiceError):
    """A super-admin tried to delete their own account."""

    pass


class AdminService:
    """CRUD over admin_users. Callers enforce role checks."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(AdminUser.id)))
        return result.scalar() or 0

    async def list_admins(self, role: AdminRole | None = None) -> list[AdminUser]:
        query = select(AdminUser).order_by(AdminUser.created_at)
        if role is not None:
            query = query.where(AdminUser.role == role.value)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get(self, admin_id: uuid.UUID) -> AdminUser:
        result = await self.session.execute(select(AdminUser).where(AdminUser.id == admin_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise AdminNotFoundError(f"Admin {admin_id} not found")
        return user

    async def _username_exists(self, username: str, exclude_id: uuid.UUID | None = None) -> bool:
        query = select(AdminUser.id).where(AdminUser.username == username)
        if exclude_id is not None:
            query = query.where(AdminUser.id != exclude_id)
        result = await self.session.execute(query)
        return result.first() is not None

    async def create(
        self,
        username: str,
        password: str,
        display_name: str,
        role: AdminRole = AdminRole.ADMIN,
    ) -> AdminUser:
        if await self._username_exists(username):
            raise UsernameTakenError(f"Username '{username}' is already taken")

        user = AdminUser(
            username=username,
            password_hash=hash_password(password),
            display_name=display_name,
            role=AdminRole(role).value,
        )
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)

        logger.info(f"Created admin {username} with role {user.role}")
        return user

    async def update(self, admin_id: uuid.UUID, changes: dict[str, Any]) -> AdminUser:
        """Apply a partial update. ``password`` is re-hashed, ``role`` validated."""
        user = await self.get(admin_id)

        username = changes.get("username")
        if username and username != user.username:
            if await self._username_exists(username, exclude_id=admin_id):
                raise UsernameTakenError(f"Username '{username}' is already taken")
            user.username = username

        if changes.get("display_name"):
            user.display_name = changes["display_name"]

        if changes.get("password"):
            user.password_hash = hash_password(changes["password"])

        if changes.get("role"):
            new_role = AdminRole(changes["role"]).value
            if new_role != user.role:
                logger.info(f"Role of {user.username} changed from {user.role} to {new_role}")
            user.role = new_role

        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def delete(self, admin_id: uuid.UUID, acting_admin_id: str) -> None:
        if str(admin_id) == acting_admin_id:
            raise SelfDeletionError("You cannot delete your own account")

        user = await self.get(admin_id)
        await self.session.delete(user)
        await self.session.commit()
        logger.info(f"Deleted admin {user.username}")
