# campadmin Services
from campadmin.services.admin import AdminService
from campadmin.services.auth import AuthFailure, AuthGate, AuthResult, AuthService
from campadmin.services.revocation import RevocationStore
from campadmin.services.roles import authorize
from campadmin.services.tokens import AdminIdentity, TokenCodec

__all__ = [
    "AdminIdentity",
    "AdminService",
    "AuthFailure",
    "AuthGate",
    "AuthResult",
    "AuthService",
    "RevocationStore",
    "TokenCodec",
    "authorize",
]
