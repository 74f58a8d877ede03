"""Customer model."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import DECIMAL, String
from sqlalchemy.orm import Mapped, mapped_column

from shop_ledger.database import Base
from shop_ledger.models.base import ShopOwnedMixin, TimestampMixin, UUIDMixin


class Customer(Base, UUIDMixin, ShopOwnedMixin, TimestampMixin):
    """Counterparty of ledger transactions.

    ``balance`` is a cached running total maintained by the transaction
    services (positive = net receivable). Reports never read it; they
    recompute from the transaction log, so the two values can drift.
    """

    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    balance: Mapped[Decimal] = mapped_column(DECIMAL(18, 2), nullable=False, default=Decimal("0"))
