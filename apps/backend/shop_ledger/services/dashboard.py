"""Dashboard summary: headline balances plus the latest activity."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from shop_ledger.config import settings
from shop_ledger.logger import get_logger
from shop_ledger.services.aggregation import aggregate_ledger
from shop_ledger.services.balances import resolve_opening_balance
from shop_ledger.services.normalize import DateWindow, round_money
from shop_ledger.services.reporting import fetch_window_transactions
from shop_ledger.services.scope import ShopScope

logger = get_logger(__name__)


async def get_dashboard_summary(
    db: AsyncSession,
    scope: ShopScope,
    window: DateWindow | None = None,
) -> dict[str, Any]:
    window = window or DateWindow()
    opening = await resolve_opening_balance(db, scope, window.start)
    transactions = await fetch_window_transactions(db, scope, window)
    # An unfiltered empty ledger is a new shop, not an anomaly.
    aggregate = aggregate_ledger(transactions, opening, flag_empty=window.is_filtered)

    recent = aggregate.lines[: settings.recent_transactions_limit]
    logger.debug("Dashboard summary computed", shop_id=str(scope), transaction_count=aggregate.transaction_count)
    return {
        "total_receivables": round_money(aggregate.total_receivables),
        "total_payables": round_money(aggregate.total_payables),
        "balance": round_money(aggregate.closing_balance),
        "opening_balance": round_money(aggregate.opening_balance),
        "alerts": list(aggregate.alerts),
        "recent_transactions": recent,
        "metadata": {
            "date_range": window.as_metadata(),
            "transaction_count": aggregate.transaction_count,
            "receivable_count": aggregate.totals.receivable_count,
            "payable_count": aggregate.totals.payable_count,
            "shop_id": str(scope),
        },
    }
