# campadmin Models
from campadmin.models.admin_user import AdminRole, AdminUser
from campadmin.models.base import BaseModel
from campadmin.models.revoked_token import RevokedToken

__all__ = [
    "AdminRole",
    "AdminUser",
    "BaseModel",
    "RevokedToken",
]
