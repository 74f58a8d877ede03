"""Request-scoped user context and shop access checks."""

from uuid import UUID

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from shop_ledger.database import get_db
from shop_ledger.logger import get_logger
from shop_ledger.models import User
from shop_ledger.security import decode_access_token
from shop_ledger.services.scope import AllShops, InvalidShopIdError, ShopScope, SingleShop, parse_shop_scope
from shop_ledger.utils import raise_bad_request, raise_forbidden, raise_unauthorized

logger = get_logger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the current user from the bearer token."""
    payload = decode_access_token(token)
    if not payload:
        raise_unauthorized("Could not validate credentials")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise_unauthorized("Token missing subject")

    try:
        user_id = UUID(user_id_str)
    except ValueError as exc:
        raise_unauthorized("Invalid user ID format in token", cause=exc)

    user = await db.get(User, user_id)
    if user is None:
        raise_unauthorized("User not found")
    return user


def resolve_scope(user: User, raw_shop_id: str | None) -> ShopScope:
    """Scope a request may read; defaults to the user's own shop.

    Only superadmins may look at another shop or at every shop at once.
    """
    if raw_shop_id is None or not raw_shop_id.strip():
        if user.shop_id is None:
            if user.is_superadmin:
                return AllShops()
            raise_bad_request("Shop ID is required")
        return SingleShop(user.shop_id)

    try:
        scope = parse_shop_scope(raw_shop_id)
    except InvalidShopIdError as exc:
        raise_bad_request(str(exc), cause=exc)

    if user.is_superadmin:
        return scope
    if isinstance(scope, SingleShop) and scope.shop_id == user.shop_id:
        return scope
    logger.warning("Shop access denied", user_id=str(user.id), requested_shop=raw_shop_id)
    raise_forbidden("Not allowed to access this shop")


def resolve_shop_id(user: User, raw_shop_id: str | UUID | None) -> UUID:
    """Single shop a write applies to."""
    scope = resolve_scope(user, str(raw_shop_id) if raw_shop_id is not None else None)
    if not isinstance(scope, SingleShop):
        raise_bad_request("A single shop is required for this operation")
    return scope.shop_id
