"""Report export pipeline: fetch, resolve, aggregate, render, upload."""

from __future__ import annotations

import asyncio
import secrets
import tempfile
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shop_ledger.config import settings
from shop_ledger.logger import async_log_timing, get_logger, log_exception
from shop_ledger.models import Customer, Transaction
from shop_ledger.services.aggregation import LedgerAggregate, aggregate_ledger
from shop_ledger.services.balances import ReportBranding, resolve_branding, resolve_opening_balance
from shop_ledger.services.excel_renderer import render_excel
from shop_ledger.services.logo import fetch_logo
from shop_ledger.services.normalize import DateWindow, day_window, parse_date_range, round_money
from shop_ledger.services.pdf_renderer import render_pdf
from shop_ledger.services.report_layout import ReportDocument, period_label
from shop_ledger.services.scope import (
    AllShops,
    ShopScope,
    parse_customer_id,
    parse_shop_scope,
    scope_filter,
)
from shop_ledger.services.storage import StorageService

logger = get_logger(__name__)

SUMMARY_TITLE = "Financial Summary Report"
DAILY_TITLE = "Daily Statement"


class ReportFormat(str, Enum):
    JSON = "json"
    PDF = "pdf"
    EXCEL = "excel"


_ARTIFACTS: dict[ReportFormat, tuple[str, str]] = {
    ReportFormat.PDF: ("pdf", "application/pdf"),
    ReportFormat.EXCEL: ("xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
}


class InvalidReportFormatError(ValueError):
    """Raised when the requested output format is not supported."""


class ReportGenerationFailedError(Exception):
    """Raised when a report artifact could not be rendered or stored."""


@dataclass(frozen=True)
class ReportRequest:
    shop_id: str | UUID | None
    start_date: str | None = None
    end_date: str | None = None
    customer_id: str | UUID | None = None
    format: str | None = None


def parse_report_format(value: str | ReportFormat | None) -> ReportFormat:
    if value is None or value == "":
        return ReportFormat.JSON
    if isinstance(value, ReportFormat):
        return value
    try:
        return ReportFormat(value.strip().lower())
    except ValueError as exc:
        raise InvalidReportFormatError(f"Unsupported report format: {value}") from exc


def report_key(kind: str, extension: str, now: datetime | None = None) -> str:
    """Object key ``<prefix>/<kind>-<UTC timestamp>-<random hex>.<ext>``."""
    stamp = (now or datetime.now(UTC)).strftime("%Y%m%dT%H%M%SZ")
    return f"{settings.report_prefix}/{kind}-{stamp}-{secrets.token_hex(4)}.{extension}"


async def fetch_window_transactions(
    db: AsyncSession,
    scope: ShopScope,
    window: DateWindow,
    customer_id: UUID | None = None,
) -> list[Transaction]:
    """Transactions in scope whose ledger date falls inside ``window``, customers eager-loaded."""
    stmt = select(Transaction).options(selectinload(Transaction.customer))
    shop_clause = scope_filter(scope, Transaction.shop_id)
    if shop_clause is not None:
        stmt = stmt.where(shop_clause)
    if window.start is not None:
        stmt = stmt.where(Transaction.date >= window.start)
    if window.end is not None:
        stmt = stmt.where(Transaction.date <= window.end)
    if customer_id is not None:
        stmt = stmt.where(Transaction.customer_id == customer_id)
    stmt = stmt.order_by(Transaction.date.asc(), Transaction.created_at.asc())

    result = await db.execute(stmt)
    return list(result.scalars().all())


def build_report_payload(
    aggregate: LedgerAggregate,
    *,
    scope: ShopScope,
    window: DateWindow,
    customer_id: UUID | None = None,
) -> dict[str, Any]:
    """JSON shape of a report. Money is rounded to cents here and nowhere earlier."""
    return {
        "total_receivables": round_money(aggregate.total_receivables),
        "total_payables": round_money(aggregate.total_payables),
        "balance": round_money(aggregate.closing_balance),
        "opening_balance": round_money(aggregate.opening_balance),
        "category_summary": {name: round_money(amount) for name, amount in aggregate.category_summary.items()},
        "transactions": aggregate.lines,
        "alerts": list(aggregate.alerts),
        "metadata": {
            "date_range": window.as_metadata(),
            "transaction_count": aggregate.transaction_count,
            "customer_id": customer_id,
            "shop_id": str(scope),
        },
    }


async def _subject_label(
    db: AsyncSession,
    scope: ShopScope,
    customer_id: UUID | None,
) -> str | None:
    if customer_id is not None:
        customer = await db.get(Customer, customer_id)
        name = customer.name if customer is not None else "Unknown Customer"
        return f"Customer: {name}"
    if isinstance(scope, AllShops):
        return "All Shops"
    return None


async def _export(
    document: ReportDocument,
    report_format: ReportFormat,
    kind: str,
    storage: StorageService | None,
) -> dict[str, str]:
    """Render ``document`` in a worker thread, stage it on disk, upload it."""
    extension, content_type = _ARTIFACTS[report_format]
    key = report_key(kind, extension)
    try:
        with tempfile.TemporaryDirectory(prefix="shop-ledger-report-") as workdir:
            if report_format == ReportFormat.PDF:
                content = (await asyncio.to_thread(render_pdf, document)).content
            else:
                content = await asyncio.to_thread(render_excel, document)

            artifact = Path(workdir) / key.rsplit("/", 1)[-1]
            artifact.write_bytes(content)

            store = storage or StorageService()
            async with async_log_timing("upload_report", logger=logger, key=key):
                url = await asyncio.to_thread(store.put, key, artifact.read_bytes(), content_type)
    except Exception as exc:
        log_exception(logger, exc, "Report generation failed", kind=kind, format=report_format.value, key=key)
        raise ReportGenerationFailedError(str(exc)) from exc

    logger.info("Report exported", kind=kind, format=report_format.value, key=key)
    return {"url": url}


async def _render_or_payload(
    db: AsyncSession,
    *,
    aggregate: LedgerAggregate,
    scope: ShopScope,
    window: DateWindow,
    customer_id: UUID | None,
    report_format: ReportFormat,
    branding: ReportBranding,
    title: str,
    kind: str,
    daily: bool,
    storage: StorageService | None,
    logo_client: httpx.AsyncClient | None,
) -> dict[str, Any]:
    if report_format == ReportFormat.JSON:
        return build_report_payload(aggregate, scope=scope, window=window, customer_id=customer_id)

    document = ReportDocument(
        title=title,
        site_name=branding.site_name,
        currency=branding.currency,
        aggregate=aggregate,
        period_label=period_label(window.start, window.end),
        generated_at=datetime.now(UTC),
        subject_label=await _subject_label(db, scope, customer_id),
        logo=await fetch_logo(branding.logo_url, client=logo_client),
        daily=daily,
    )
    return await _export(document, report_format, kind, storage)


async def generate_summary_report(
    db: AsyncSession,
    request: ReportRequest,
    *,
    storage: StorageService | None = None,
    logo_client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Summary report over an optional date range, optionally for one customer.

    Returns the JSON payload, or ``{"url": ...}`` for PDF/XLSX output.
    """
    scope = parse_shop_scope(request.shop_id)
    window = parse_date_range(request.start_date, request.end_date)
    customer_id = parse_customer_id(request.customer_id)
    report_format = parse_report_format(request.format)

    branding = await resolve_branding(db, scope)
    opening = await resolve_opening_balance(db, scope, window.start, customer_id)
    transactions = await fetch_window_transactions(db, scope, window, customer_id)
    aggregate = aggregate_ledger(transactions, opening)

    logger.info(
        "Summary report aggregated",
        shop_id=str(scope),
        customer_id=str(customer_id) if customer_id else None,
        transaction_count=aggregate.transaction_count,
        format=report_format.value,
    )
    return await _render_or_payload(
        db,
        aggregate=aggregate,
        scope=scope,
        window=window,
        customer_id=customer_id,
        report_format=report_format,
        branding=branding,
        title=SUMMARY_TITLE,
        kind="summary",
        daily=False,
        storage=storage,
        logo_client=logo_client,
    )


async def generate_daily_report(
    db: AsyncSession,
    shop_id: str | UUID | None,
    day: str,
    report_format: str | ReportFormat | None = None,
    *,
    storage: StorageService | None = None,
    logo_client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Statement for one calendar day with an opening row and running balances."""
    scope = parse_shop_scope(shop_id)
    window = day_window(day)
    output = parse_report_format(report_format)

    branding = await resolve_branding(db, scope)
    opening = await resolve_opening_balance(db, scope, window.start)
    transactions = await fetch_window_transactions(db, scope, window)
    aggregate = aggregate_ledger(transactions, opening, with_running_balance=True)

    logger.info(
        "Daily report aggregated",
        shop_id=str(scope),
        day=window.start.date().isoformat() if window.start else day,
        transaction_count=aggregate.transaction_count,
    )
    return await _render_or_payload(
        db,
        aggregate=aggregate,
        scope=scope,
        window=window,
        customer_id=None,
        report_format=output,
        branding=branding,
        title=DAILY_TITLE,
        kind="daily",
        daily=True,
        storage=storage,
        logo_client=logo_client,
    )
