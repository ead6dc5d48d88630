from editsync.api.http.health import router as health_router
from editsync.api.http.auth import router as auth_router
from editsync.api.http.users import router as users_router
from editsync.api.http.documents import router as documents_router
from editsync.api.http.sharing import router as sharing_router

__all__ = [
    "health_router",
    "auth_router",
    "users_router",
    "documents_router",
    "sharing_router"
]
