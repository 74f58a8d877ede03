"""User model."""

import enum
from uuid import UUID

from sqlalchemy import Enum, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shop_ledger.database import Base
from shop_ledger.models.base import TimestampMixin, UUIDMixin


class UserRole(str, enum.Enum):
    """Access level. Only superadmins may read across all shops."""

    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class User(Base, UUIDMixin, TimestampMixin):
    """Application user (authentication handled elsewhere)."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(
            UserRole,
            name="user_role_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
        default=UserRole.USER,
    )
    shop_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("shops.id", ondelete="SET NULL"),
        nullable=True,
    )

    @property
    def is_superadmin(self) -> bool:
        return self.role == UserRole.SUPERADMIN
