"""API routers package."""

from shop_ledger.routers import dashboard, reports, settings, transactions

__all__ = [
    "dashboard",
    "reports",
    "settings",
    "transactions",
]
