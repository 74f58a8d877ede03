"""Transaction and opening-balance writes.

Every write that changes a transaction's signed amount also moves the owning
customer's cached ``balance`` with a single ``balance = balance + :delta``
statement, so concurrent writers never overwrite each other's increments.
The cached value is not reconciled against a recomputed ledger.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shop_ledger.logger import get_logger
from shop_ledger.models import Customer, Setting, Transaction, TransactionType
from shop_ledger.schemas.ledger import TransactionCreate, TransactionUpdate
from shop_ledger.services.balances import get_shop_settings

logger = get_logger(__name__)

_ZERO = Decimal("0")


class LedgerError(Exception):
    """Base class for ledger write failures."""


class LedgerValidationError(LedgerError):
    """Raised when a transaction payload is inconsistent."""


class CustomerNotFoundError(LedgerError):
    pass


class TransactionNotFoundError(LedgerError):
    pass


class OpeningBalanceLockedError(LedgerError):
    """Raised when the opening balance has already been set for a shop."""


def _sides(
    transaction_type: TransactionType,
    payable: Decimal | None,
    receivable: Decimal | None,
) -> tuple[Decimal, Decimal]:
    """(payable, receivable) with the non-selected side forced to zero."""
    if transaction_type == TransactionType.RECEIVABLE:
        if receivable is None:
            raise LedgerValidationError("Receivable amount is required for receivable transactions")
        if receivable <= 0:
            raise LedgerValidationError("Receivable amount must be greater than zero")
        return _ZERO, receivable
    if payable is None:
        raise LedgerValidationError("Payable amount is required for payable transactions")
    if payable <= 0:
        raise LedgerValidationError("Payable amount must be greater than zero")
    return payable, _ZERO


def _signed(transaction_type: TransactionType, payable: Decimal, receivable: Decimal) -> Decimal:
    return receivable if transaction_type == TransactionType.RECEIVABLE else -payable


async def adjust_customer_balance(db: AsyncSession, customer_id: UUID, delta: Decimal) -> None:
    if delta == 0:
        return
    await db.execute(
        update(Customer)
        .where(Customer.id == customer_id)
        .values(balance=Customer.balance + delta)
        .execution_options(synchronize_session=False)
    )


async def _get_customer(db: AsyncSession, shop_id: UUID, customer_id: UUID) -> Customer:
    result = await db.execute(select(Customer).where(Customer.id == customer_id, Customer.shop_id == shop_id))
    customer = result.scalar_one_or_none()
    if customer is None:
        raise CustomerNotFoundError(f"Customer {customer_id} not found")
    return customer


async def _resolve_customer(db: AsyncSession, shop_id: UUID, data: TransactionCreate) -> Customer:
    if data.customer_id is not None:
        return await _get_customer(db, shop_id, data.customer_id)

    name = (data.customer_name or "").strip()
    if not name:
        raise LedgerValidationError("Customer ID or name required")

    result = await db.execute(select(Customer).where(Customer.shop_id == shop_id, Customer.name == name))
    customer = result.scalars().first()
    if customer is None:
        customer = Customer(shop_id=shop_id, name=name, phone=data.phone, balance=_ZERO)
        db.add(customer)
        await db.flush()
        logger.info("Customer created from transaction", shop_id=str(shop_id), customer_id=str(customer.id))
    return customer


async def get_transaction(db: AsyncSession, shop_id: UUID, transaction_id: UUID) -> Transaction:
    result = await db.execute(
        select(Transaction).where(Transaction.id == transaction_id, Transaction.shop_id == shop_id)
    )
    transaction = result.scalar_one_or_none()
    if transaction is None:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
    return transaction


async def create_transaction(
    db: AsyncSession, shop_id: UUID, data: TransactionCreate
) -> tuple[Transaction, Customer]:
    payable, receivable = _sides(data.transaction_type, data.payable, data.receivable)
    customer = await _resolve_customer(db, shop_id, data)

    transaction = Transaction(
        shop_id=shop_id,
        customer_id=customer.id,
        transaction_type=data.transaction_type,
        total_amount=data.total_amount,
        payable=payable,
        receivable=receivable,
        description=data.description,
        category=data.category or "Other",
        payment_method=data.payment_method,
        transaction_image=data.transaction_image,
        is_recurring=data.is_recurring,
        date=data.date or datetime.now(UTC),
        due_date=data.due_date,
    )
    db.add(transaction)
    await db.flush()

    await adjust_customer_balance(db, customer.id, _signed(data.transaction_type, payable, receivable))
    await db.refresh(transaction)
    await db.refresh(customer)
    logger.info(
        "Transaction created",
        shop_id=str(shop_id),
        transaction_id=str(transaction.id),
        transaction_type=data.transaction_type.value,
    )
    return transaction, customer


async def update_transaction(
    db: AsyncSession,
    shop_id: UUID,
    transaction_id: UUID,
    data: TransactionUpdate,
) -> Transaction:
    """Apply ``data`` and move customer balances by the change in signed amount."""
    transaction = await get_transaction(db, shop_id, transaction_id)
    old_customer_id = transaction.customer_id
    old_delta = _signed(transaction.transaction_type, transaction.payable, transaction.receivable)

    new_customer_id = old_customer_id
    if data.customer_id is not None and data.customer_id != old_customer_id:
        new_customer_id = (await _get_customer(db, shop_id, data.customer_id)).id

    new_type = data.transaction_type or transaction.transaction_type
    type_changed = new_type != transaction.transaction_type
    # A type switch without the new side's amount is ambiguous, so it is rejected.
    payable_in = data.payable if data.payable is not None or type_changed else transaction.payable
    receivable_in = data.receivable if data.receivable is not None or type_changed else transaction.receivable
    payable, receivable = _sides(new_type, payable_in, receivable_in)

    fields = data.model_dump(
        exclude_unset=True,
        exclude={"customer_id", "transaction_type", "payable", "receivable"},
    )
    for name, value in fields.items():
        if name in {"total_amount", "payment_method", "is_recurring", "date"} and value is None:
            continue
        setattr(transaction, name, value)
    transaction.customer_id = new_customer_id
    transaction.transaction_type = new_type
    transaction.payable = payable
    transaction.receivable = receivable
    await db.flush()

    new_delta = _signed(new_type, payable, receivable)
    if new_customer_id == old_customer_id:
        await adjust_customer_balance(db, old_customer_id, new_delta - old_delta)
    else:
        await adjust_customer_balance(db, old_customer_id, -old_delta)
        await adjust_customer_balance(db, new_customer_id, new_delta)

    await db.refresh(transaction)
    logger.info("Transaction updated", shop_id=str(shop_id), transaction_id=str(transaction_id))
    return transaction


async def delete_transaction(db: AsyncSession, shop_id: UUID, transaction_id: UUID) -> None:
    transaction = await get_transaction(db, shop_id, transaction_id)
    delta = _signed(transaction.transaction_type, transaction.payable, transaction.receivable)
    await adjust_customer_balance(db, transaction.customer_id, -delta)
    await db.delete(transaction)
    await db.flush()
    logger.info("Transaction deleted", shop_id=str(shop_id), transaction_id=str(transaction_id))


async def set_opening_balance(db: AsyncSession, shop_id: UUID, amount: Decimal) -> Setting:
    """Set the shop's opening balance. Only the first write is honoured."""
    setting = await get_shop_settings(db, shop_id)
    result = await db.execute(
        update(Setting)
        .where(Setting.shop_id == shop_id, Setting.opening_balance_set.is_(False))
        .values(opening_balance=amount, opening_balance_set=True)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning("Opening balance already set, write ignored", shop_id=str(shop_id))
        raise OpeningBalanceLockedError("Opening balance has already been set for this shop")

    await db.refresh(setting)
    logger.info("Opening balance set", shop_id=str(shop_id), opening_balance=str(amount))
    return setting
