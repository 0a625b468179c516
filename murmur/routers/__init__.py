"""API routers."""

from murmur.routers.auth import router as auth_router
from murmur.routers.messages import router as messages_router
from murmur.routers.profiles import router as profiles_router
from murmur.routers.send import router as send_router
from murmur.routers.storage import router as storage_router

__all__ = ["auth_router", "messages_router", "profiles_router", "send_router", "storage_router"]
