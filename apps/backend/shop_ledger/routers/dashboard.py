"""Dashboard API router."""

from __future__ import annotations

from fastapi import APIRouter, Query

from shop_ledger.auth import resolve_scope
from shop_ledger.deps import CurrentUser, DbSession
from shop_ledger.logger import get_logger
from shop_ledger.schemas import DashboardResponse
from shop_ledger.services.balances import SettingsNotFoundError, ShopNotFoundError
from shop_ledger.services.dashboard import get_dashboard_summary
from shop_ledger.services.normalize import InvalidDateError, InvalidRangeError, parse_date_range
from shop_ledger.utils import raise_bad_request, raise_not_found

router = APIRouter(prefix="/dashboard", tags=["dashboard"])
logger = get_logger(__name__)


@router.get("", response_model=DashboardResponse)
async def dashboard(
    shop_id: str | None = Query(default=None, alias="shopId"),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    db: DbSession = None,
    user: CurrentUser = None,
) -> DashboardResponse:
    scope = resolve_scope(user, shop_id)
    try:
        window = parse_date_range(start_date, end_date)
    except (InvalidDateError, InvalidRangeError) as exc:
        raise_bad_request(str(exc), cause=exc)

    try:
        summary = await get_dashboard_summary(db, scope, window)
    except ShopNotFoundError as exc:
        raise_not_found("Shop", cause=exc)
    except SettingsNotFoundError as exc:
        raise_not_found("Settings", cause=exc)
    return DashboardResponse.model_validate(summary)
