"""Shop (tenant) model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from shop_ledger.database import Base
from shop_ledger.models.base import TimestampMixin, UUIDMixin


class Shop(Base, UUIDMixin, TimestampMixin):
    """Tenant boundary. Settings, customers and transactions scope to one shop."""

    __tablename__ = "shops"

    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<Shop {self.name}>"
