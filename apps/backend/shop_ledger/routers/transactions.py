"""Transaction write API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, status

from shop_ledger.auth import resolve_shop_id
from shop_ledger.deps import CurrentUser, DbSession
from shop_ledger.logger import get_logger
from shop_ledger.schemas import (
    CustomerResponse,
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
    TransactionWithCustomerResponse,
)
from shop_ledger.services import ledger
from shop_ledger.services.ledger import (
    CustomerNotFoundError,
    LedgerValidationError,
    TransactionNotFoundError,
)
from shop_ledger.utils import raise_bad_request, raise_not_found

router = APIRouter(prefix="/transactions", tags=["transactions"])
logger = get_logger(__name__)


@router.post("", response_model=TransactionWithCustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreate,
    shop_id: str | None = Query(default=None, alias="shopId"),
    db: DbSession = None,
    user: CurrentUser = None,
) -> TransactionWithCustomerResponse:
    target_shop = resolve_shop_id(user, shop_id)
    try:
        transaction, customer = await ledger.create_transaction(db, target_shop, payload)
    except LedgerValidationError as exc:
        logger.warning("Rejected transaction", shop_id=str(target_shop), error=str(exc))
        raise_bad_request(str(exc), cause=exc)
    except CustomerNotFoundError as exc:
        raise_not_found("Customer", cause=exc)
    await db.commit()
    return TransactionWithCustomerResponse(
        transaction=TransactionResponse.model_validate(transaction),
        customer=CustomerResponse.model_validate(customer),
    )


@router.put("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: UUID,
    payload: TransactionUpdate,
    shop_id: str | None = Query(default=None, alias="shopId"),
    db: DbSession = None,
    user: CurrentUser = None,
) -> TransactionResponse:
    target_shop = resolve_shop_id(user, shop_id)
    try:
        transaction = await ledger.update_transaction(db, target_shop, transaction_id, payload)
    except LedgerValidationError as exc:
        raise_bad_request(str(exc), cause=exc)
    except TransactionNotFoundError as exc:
        raise_not_found("Transaction", cause=exc)
    except CustomerNotFoundError as exc:
        raise_not_found("Customer", cause=exc)
    await db.commit()
    return TransactionResponse.model_validate(transaction)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: UUID,
    shop_id: str | None = Query(default=None, alias="shopId"),
    db: DbSession = None,
    user: CurrentUser = None,
) -> None:
    target_shop = resolve_shop_id(user, shop_id)
    try:
        await ledger.delete_transaction(db, target_shop, transaction_id)
    except TransactionNotFoundError as exc:
        logger.debug("Transaction not found for deletion", transaction_id=str(transaction_id))
        raise_not_found("Transaction", cause=exc)
    await db.commit()
