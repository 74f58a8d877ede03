"""SQLAlchemy models package."""

from shop_ledger.models.customer import Customer
from shop_ledger.models.setting import Setting
from shop_ledger.models.shop import Shop
from shop_ledger.models.transaction import Transaction, TransactionType
from shop_ledger.models.user import User, UserRole

__all__ = [
    "Customer",
    "Setting",
    "Shop",
    "Transaction",
    "TransactionType",
    "User",
    "UserRole",
]
