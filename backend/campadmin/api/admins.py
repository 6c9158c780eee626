"""Admin account management API endpoints.

Reading accounts is open to super-admins and admins; creating, editing
(including role changes) and deleting accounts is super-admin only.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campadmin.api.deps import require_roles
from campadmin.core import get_db
from campadmin.models.admin_user import AdminRole
from campadmin.schemas.admin import (
    AdminCreate,
    AdminListResponse,
    AdminResponse,
    AdminUpdate,
)
from campadmin.services.admin import (
    AdminNotFoundError,
    AdminService,
    SelfDeletionError,
    UsernameTakenError,
)
from campadmin.services.roles import ADMINS, SUPER_ADMIN_ONLY
from campadmin.services.tokens import AdminIdentity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admins", tags=["admins"])


def get_admin_service(db: AsyncSession = Depends(get_db)) -> AdminService:
    """Dependency to get admin service."""
    return AdminService(db)


@router.get("", response_model=AdminListResponse)
async def list_admins(
    _admin: AdminIdentity = Depends(require_roles(ADMINS)),
    role: AdminRole | None = Query(None, description="Only return admins with this role"),
    service: AdminService = Depends(get_admin_service),
) -> AdminListResponse:
    """List admin accounts."""
    admins = await service.list_admins(role=role)
    return AdminListResponse(
        items=[AdminResponse.model_validate(a) for a in admins],
        total=len(admins),
    )


@router.get("/{admin_id}", response_model=AdminResponse)
async def get_admin(
    admin_id: UUID,
    _admin: AdminIdentity = Depends(require_roles(ADMINS)),
    service: AdminService = Depends(get_admin_service),
) -> AdminResponse:
    """Get a single admin account."""
    try:
        user = await service.get(admin_id)
    except AdminNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return AdminResponse.model_validate(user)


@router.post("", response_model=AdminResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    data: AdminCreate,
    admin: AdminIdentity = Depends(require_roles(SUPER_ADMIN_ONLY)),
    service: AdminService = Depends(get_admin_service),
) -> AdminResponse:
    """Create an admin account."""
    try:
        user = await service.create(
            username=data.username,
            password=data.password,
            display_name=data.display_name,
            role=data.role,
        )
    except UsernameTakenError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    logger.info(f"Admin {user.username} created by {admin.username}")
    return AdminResponse.model_validate(user)


@router.put("/{admin_id}", response_model=AdminResponse)
async def update_admin(
    admin_id: UUID,
    data: AdminUpdate,
    _admin: AdminIdentity = Depends(require_roles(SUPER_ADMIN_ONLY)),
    service: AdminService = Depends(get_admin_service),
) -> AdminResponse:
    """Update an admin account, including its role."""
    try:
        user = await service.update(admin_id, data.model_dump(exclude_unset=True))
    except AdminNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except UsernameTakenError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return AdminResponse.model_validate(user)


@router.delete("/{admin_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_admin(
    admin_id: UUID,
    admin: AdminIdentity = Depends(require_roles(SUPER_ADMIN_ONLY)),
    service: AdminService = Depends(get_admin_service),
) -> None:
    """Delete an admin account. Super-admins cannot delete themselves."""
    try:
        await service.delete(admin_id, acting_admin_id=admin.id)
    except SelfDeletionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except AdminNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    logger.info(f"Admin {admin_id} deleted by {admin.username}")
