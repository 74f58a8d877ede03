"""Shop settings API router."""

from __future__ import annotations

from fastapi import APIRouter

from shop_ledger.auth import resolve_shop_id
from shop_ledger.deps import CurrentUser, DbSession
from shop_ledger.logger import get_logger
from shop_ledger.schemas import OpeningBalanceUpdate, SettingResponse
from shop_ledger.services.balances import SettingsNotFoundError, ShopNotFoundError
from shop_ledger.services.ledger import OpeningBalanceLockedError, set_opening_balance
from shop_ledger.utils import raise_conflict, raise_not_found

router = APIRouter(prefix="/settings", tags=["settings"])
logger = get_logger(__name__)


@router.put("/opening-balance", response_model=SettingResponse)
async def update_opening_balance(
    payload: OpeningBalanceUpdate,
    db: DbSession = None,
    user: CurrentUser = None,
) -> SettingResponse:
    """Set the shop's opening balance. Refused once it has been set."""
    shop_id = resolve_shop_id(user, payload.shop_id)
    try:
        setting = await set_opening_balance(db, shop_id, payload.opening_balance)
    except ShopNotFoundError as exc:
        raise_not_found("Shop", cause=exc)
    except SettingsNotFoundError as exc:
        raise_not_found("Settings", cause=exc)
    except OpeningBalanceLockedError as exc:
        raise_conflict(str(exc), cause=exc)
    await db.commit()
    return SettingResponse.model_validate(setting)
