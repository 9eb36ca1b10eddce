"""Routers package."""

from .auth import router as auth_router
from .commissions import router as commissions_router
from .discount_rules import router as discount_rules_router
from .orders import router as orders_router
from .quotes import router as quotes_router
from .resellers import router as resellers_router
from .settings import router as settings_router
from .settlement import router as settlement_router
from .settlement_records import router as settlement_records_router

__all__ = [
    "auth_router",
    "commissions_router",
    "discount_rules_router",
    "orders_router",
    "quotes_router",
    "resellers_router",
    "settings_router",
    "settlement_router",
    "settlement_records_router",
]
