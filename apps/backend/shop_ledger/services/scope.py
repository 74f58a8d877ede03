"""Shop scope: a single tenant or the superadmin all-shops view."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement

ALL_SHOPS = "all"


class InvalidShopIdError(ValueError):
    """Raised when a shop identifier is neither a UUID nor ``all``."""


class InvalidCustomerIdError(ValueError):
    """Raised when a customer identifier is not a UUID."""


@dataclass(frozen=True)
class SingleShop:
    shop_id: UUID

    def __str__(self) -> str:
        return str(self.shop_id)


@dataclass(frozen=True)
class AllShops:
    def __str__(self) -> str:
        return ALL_SHOPS


ShopScope = SingleShop | AllShops


def parse_shop_scope(raw: str | UUID | None) -> ShopScope:
    if isinstance(raw, UUID):
        return SingleShop(raw)
    if raw is None:
        raise InvalidShopIdError("Shop ID is required")
    value = raw.strip()
    if value.lower() == ALL_SHOPS:
        return AllShops()
    try:
        return SingleShop(UUID(value))
    except ValueError as exc:
        raise InvalidShopIdError(f"Invalid shop ID: {raw}") from exc


def parse_customer_id(raw: str | UUID | None) -> UUID | None:
    if raw is None or isinstance(raw, UUID):
        return raw
    value = raw.strip()
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError as exc:
        raise InvalidCustomerIdError(f"Invalid customer ID: {raw}") from exc


def scope_filter(scope: ShopScope, column: Any) -> ColumnElement[bool] | None:
    """SQL predicate restricting ``column`` (a ``shop_id`` column) to the scope."""
    match scope:
        case SingleShop(shop_id=shop_id):
            return column == shop_id
        case AllShops():
            return None
    raise TypeError(f"Unsupported shop scope: {scope!r}")
