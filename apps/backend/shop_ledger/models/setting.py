"""Per-shop settings model."""

from decimal import Decimal

from sqlalchemy import DECIMAL, Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from shop_ledger.database import Base
from shop_ledger.models.base import ShopOwnedMixin, TimestampMixin, UUIDMixin


class Setting(Base, UUIDMixin, ShopOwnedMixin, TimestampMixin):
    """Branding and ledger baseline for one shop.

    ``opening_balance`` stays NULL until the shop owner sets it. Once
    ``opening_balance_set`` is true further writes are ignored.
    """

    __tablename__ = "settings"
    __table_args__ = (UniqueConstraint("shop_id", name="uq_settings_shop_id"),)

    site_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    logo: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    opening_balance: Mapped[Decimal | None] = mapped_column(DECIMAL(18, 2), nullable=True)
    opening_balance_set: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="PKR")
