# campadmin Pydantic Schemas
from campadmin.schemas.admin import (
    AdminCreate,
    AdminListResponse,
    AdminResponse,
    AdminUpdate,
)
from campadmin.schemas.auth import (
    AdminSummary,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    TokenResponse,
    VerifyResponse,
)

__all__ = [
    "AdminCreate",
    "AdminListResponse",
    "AdminResponse",
    "AdminSummary",
    "AdminUpdate",
    "LoginRequest",
    "MessageResponse",
    "ProfileResponse",
    "TokenResponse",
    "VerifyResponse",
]
