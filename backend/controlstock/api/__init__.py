"""
API routes
"""
from .auth import router as auth_router
from .users import router as users_router
from .warehouses import router as warehouses_router
from .medicines import router as medicines_router
from .movements import router as movements_router
from .inventory import router as inventory_router
from .reports import router as reports_router
from .audit import router as audit_router

__all__ = [
    "auth_router",
    "users_router",
    "warehouses_router",
    "medicines_router",
    "movements_router",
    "inventory_router",
    "reports_router",
    "audit_router",
]
