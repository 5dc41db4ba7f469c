"""
Routes package.
"""

from .auth import router as auth_router
from .inventory import router as inventory_router
from .sales import router as sales_router
from .users import router as users_router
from .reports import router as reports_router
from .system import router as system_router

__all__ = [
    "auth_router",
    "inventory_router",
    "sales_router",
    "users_router",
    "reports_router",
    "system_router",
]
