# campadmin API
from campadmin.api.router import api_router

__all__ = ["api_router"]
