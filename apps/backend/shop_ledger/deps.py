"""Common FastAPI dependencies for consistent type annotations.

Usage:
    from shop_ledger.deps import CurrentUser, DbSession

    async def my_endpoint(db: DbSession, user: CurrentUser):
        ...
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shop_ledger.auth import get_current_user
from shop_ledger.database import get_db
from shop_ledger.models import User

DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[User, Depends(get_current_user)]

__all__ = ["CurrentUser", "DbSession"]
