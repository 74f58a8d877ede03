"""Ledger transaction model."""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    DECIMAL,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shop_ledger.database import Base
from shop_ledger.models.base import ShopOwnedMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from shop_ledger.models.customer import Customer


class TransactionType(str, enum.Enum):
    """Side of the ledger a transaction lands on."""

    PAYABLE = "payable"
    RECEIVABLE = "receivable"


class Transaction(Base, UUIDMixin, ShopOwnedMixin, TimestampMixin):
    """
    One receivable or payable ledger entry.

    Exactly one of ``payable``/``receivable`` is non-zero and it matches
    ``transaction_type``. ``date`` is the ledger-effective instant used by
    every report filter; ``created_at`` is bookkeeping only.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_transactions_total_non_negative"),
        CheckConstraint("payable >= 0 AND receivable >= 0", name="ck_transactions_sides_non_negative"),
    )

    customer_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        Enum(
            TransactionType,
            name="transaction_type_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
    )
    total_amount: Mapped[Decimal] = mapped_column(DECIMAL(18, 2), nullable=False)
    payable: Mapped[Decimal] = mapped_column(DECIMAL(18, 2), nullable=False, default=Decimal("0"))
    receivable: Mapped[Decimal] = mapped_column(DECIMAL(18, 2), nullable=False, default=Decimal("0"))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True, default="Other")
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False, default="Cash")
    transaction_image: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        default=lambda: datetime.now(UTC),
    )
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    customer: Mapped[Customer] = relationship("Customer", lazy="raise")

    def __repr__(self) -> str:
        return f"<Transaction {self.transaction_type.value} {self.total_amount} on {self.date}>"
