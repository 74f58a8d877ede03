"""Opening balance resolution for a report window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shop_ledger.config import settings
from shop_ledger.logger import get_logger
from shop_ledger.models import Setting, Shop, Transaction, TransactionType
from shop_ledger.services.normalize import to_number
from shop_ledger.services.scope import AllShops, ShopScope, SingleShop, scope_filter

logger = get_logger(__name__)

_ZERO = Decimal("0")


class ShopNotFoundError(LookupError):
    """Raised when a shop referenced by a report scope does not exist."""


class SettingsNotFoundError(LookupError):
    """Raised when a shop has no settings record."""


@dataclass(frozen=True)
class ReportBranding:
    """Header/footer details for rendered reports."""

    site_name: str
    logo_url: str | None
    currency: str
    all_shops: bool = False


async def get_shop_settings(db: AsyncSession, shop_id: UUID) -> Setting:
    shop = await db.get(Shop, shop_id)
    if shop is None:
        raise ShopNotFoundError(f"Shop {shop_id} not found")

    result = await db.execute(select(Setting).where(Setting.shop_id == shop_id))
    setting = result.scalar_one_or_none()
    if setting is None:
        raise SettingsNotFoundError(f"Settings for shop {shop_id} not found")
    return setting


async def resolve_branding(db: AsyncSession, scope: ShopScope) -> ReportBranding:
    match scope:
        case SingleShop(shop_id=shop_id):
            setting = await get_shop_settings(db, shop_id)
            return ReportBranding(
                site_name=setting.site_name or settings.default_site_name,
                logo_url=setting.logo,
                currency=setting.currency or settings.default_currency,
            )
        case AllShops():
            return ReportBranding(
                site_name=settings.default_site_name,
                logo_url=None,
                currency=settings.default_currency,
                all_shops=True,
            )
    raise TypeError(f"Unsupported shop scope: {scope!r}")


async def resolve_baseline(db: AsyncSession, scope: ShopScope) -> Decimal:
    """Configured opening balance: one shop's, or the sum over every shop."""
    match scope:
        case SingleShop(shop_id=shop_id):
            setting = await get_shop_settings(db, shop_id)
            return to_number(setting.opening_balance)
        case AllShops():
            result = await db.execute(select(Setting.opening_balance))
            return sum((to_number(value) for value in result.scalars().all()), _ZERO)
    raise TypeError(f"Unsupported shop scope: {scope!r}")


async def prior_delta(
    db: AsyncSession,
    scope: ShopScope,
    before: datetime,
    customer_id: UUID | None = None,
) -> tuple[Decimal, int]:
    """Signed sum of every transaction strictly before ``before``.

    Returns the delta and how many transactions contributed to it.
    """
    stmt = select(
        Transaction.transaction_type,
        Transaction.receivable,
        Transaction.payable,
    ).where(Transaction.date < before)

    shop_clause = scope_filter(scope, Transaction.shop_id)
    if shop_clause is not None:
        stmt = stmt.where(shop_clause)
    if customer_id is not None:
        stmt = stmt.where(Transaction.customer_id == customer_id)

    result = await db.execute(stmt)
    delta = _ZERO
    count = 0
    for txn_type, receivable, payable in result.all():
        if txn_type == TransactionType.RECEIVABLE:
            delta += to_number(receivable)
        else:
            delta -= to_number(payable)
        count += 1
    return delta, count


async def resolve_opening_balance(
    db: AsyncSession,
    scope: ShopScope,
    window_start: datetime | None = None,
    customer_id: UUID | None = None,
) -> Decimal:
    """Opening balance = configured baseline + replay of all prior transactions.

    Without a window start, or with no prior history, the baseline applies on
    its own.
    """
    baseline = await resolve_baseline(db, scope)
    if window_start is None:
        return baseline

    delta, prior_count = await prior_delta(db, scope, window_start, customer_id)
    logger.debug(
        "Opening balance resolved",
        scope=str(scope),
        baseline=str(baseline),
        prior_delta=str(delta),
        prior_count=prior_count,
    )
    if prior_count == 0:
        return baseline
    return baseline + delta
