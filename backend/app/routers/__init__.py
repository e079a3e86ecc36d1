"""Follow-Up Unit - API Routers"""
from .auth import router as auth_router
from .admin import router as admin_router
from .persons import router as persons_router

__all__ = [
    "auth_router",
    "admin_router",
    "persons_router",
]
