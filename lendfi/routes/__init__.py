from .admin import router as admin_router
from .auth import router as auth_router
from .health import router as health_router
from .loans import router as loans_router
from .roscas import router as roscas_router
from .transactions import router as transactions_router

__all__ = [
    "admin_router", "auth_router", "health_router",
    "loans_router", "roscas_router", "transactions_router",
]
