"""Report export API router."""

from __future__ import annotations

from fastapi import APIRouter, Query

from shop_ledger.auth import resolve_scope
from shop_ledger.deps import CurrentUser, DbSession
from shop_ledger.logger import get_logger
from shop_ledger.schemas import ReportArtifactResponse, ReportResultResponse
from shop_ledger.services.balances import SettingsNotFoundError, ShopNotFoundError
from shop_ledger.services.normalize import InvalidDateError, InvalidRangeError
from shop_ledger.services.reporting import (
    InvalidReportFormatError,
    ReportGenerationFailedError,
    ReportRequest,
    generate_daily_report,
    generate_summary_report,
)
from shop_ledger.services.scope import InvalidCustomerIdError, InvalidShopIdError
from shop_ledger.utils import raise_bad_request, raise_internal_error, raise_not_found

router = APIRouter(prefix="/reports", tags=["reports"])
logger = get_logger(__name__)

_INVALID_INPUT = (
    InvalidDateError,
    InvalidRangeError,
    InvalidShopIdError,
    InvalidCustomerIdError,
    InvalidReportFormatError,
)


def _to_response(report: dict) -> ReportResultResponse | ReportArtifactResponse:
    if "url" in report:
        return ReportArtifactResponse(**report)
    return ReportResultResponse.model_validate(report)


@router.get("/summary", response_model=ReportResultResponse | ReportArtifactResponse)
async def summary_report(
    shop_id: str | None = Query(default=None, alias="shopId"),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    customer_id: str | None = Query(default=None, alias="customerId"),
    report_format: str | None = Query(default=None, alias="format"),
    db: DbSession = None,
    user: CurrentUser = None,
) -> ReportResultResponse | ReportArtifactResponse:
    """Summary report as JSON, or a download URL for PDF/XLSX."""
    scope = resolve_scope(user, shop_id)
    request = ReportRequest(
        shop_id=str(scope),
        start_date=start_date,
        end_date=end_date,
        customer_id=customer_id,
        format=report_format,
    )
    try:
        report = await generate_summary_report(db, request)
    except _INVALID_INPUT as exc:
        logger.warning("Invalid summary report request", shop_id=shop_id, error=str(exc))
        raise_bad_request(str(exc), cause=exc)
    except ShopNotFoundError as exc:
        raise_not_found("Shop", cause=exc)
    except SettingsNotFoundError as exc:
        raise_not_found("Settings", cause=exc)
    except ReportGenerationFailedError as exc:
        raise_internal_error(f"Report generation failed: {exc}", cause=exc)
    return _to_response(report)


@router.get("/daily", response_model=ReportResultResponse | ReportArtifactResponse)
async def daily_report(
    day: str = Query(..., alias="date"),
    shop_id: str | None = Query(default=None, alias="shopId"),
    report_format: str | None = Query(default=None, alias="format"),
    db: DbSession = None,
    user: CurrentUser = None,
) -> ReportResultResponse | ReportArtifactResponse:
    """Statement for one day with running balances."""
    scope = resolve_scope(user, shop_id)
    try:
        report = await generate_daily_report(db, str(scope), day, report_format)
    except _INVALID_INPUT as exc:
        logger.warning("Invalid daily report request", shop_id=shop_id, day=day, error=str(exc))
        raise_bad_request(str(exc), cause=exc)
    except ShopNotFoundError as exc:
        raise_not_found("Shop", cause=exc)
    except SettingsNotFoundError as exc:
        raise_not_found("Settings", cause=exc)
    except ReportGenerationFailedError as exc:
        raise_internal_error(f"Report generation failed: {exc}", cause=exc)
    return _to_response(report)
