"""Ledger aggregation: totals, category summary and running balance.

Everything here is pure: callers hand in transactions that are already
scope/date filtered plus a resolved opening balance, and get back a
``LedgerAggregate``. Intermediate sums keep full Decimal precision; rounding
to cents happens when the aggregate is serialized or rendered.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from shop_ledger.config import settings
from shop_ledger.models import Transaction, TransactionType
from shop_ledger.services.normalize import as_utc, to_number

UNCATEGORIZED = "Uncategorized"

NO_TRANSACTIONS_ALERT = "No transactions recorded for the selected period."
NEGATIVE_BALANCE_ALERT = "Warning: Negative cash balance detected."
LARGE_AMOUNTS_ALERT = "Notice: Large transaction amounts detected. Please verify data accuracy."

_ZERO = Decimal("0")
_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass(frozen=True)
class LedgerTotals:
    receivables: Decimal = _ZERO
    payables: Decimal = _ZERO
    receivable_count: int = 0
    payable_count: int = 0

    @property
    def net(self) -> Decimal:
        return self.receivables - self.payables


@dataclass(frozen=True)
class LedgerLine:
    """One transaction as shown in reports."""

    id: UUID | None
    date: datetime | None
    type: TransactionType
    customer_id: UUID | None
    customer_name: str
    description: str | None
    category: str
    payment_method: str | None
    total_amount: Decimal
    payable: Decimal
    receivable: Decimal
    amount: Decimal
    remaining_amount: Decimal
    due_date: datetime | None = None
    is_recurring: bool = False
    transaction_image: str | None = None
    created_at: datetime | None = None
    running_balance: Decimal | None = None

    @property
    def credit(self) -> Decimal:
        return self.receivable if self.type == TransactionType.RECEIVABLE else _ZERO

    @property
    def debit(self) -> Decimal:
        return self.payable if self.type == TransactionType.PAYABLE else _ZERO

    @property
    def formatted_date(self) -> str:
        return self.date.date().isoformat() if self.date else "N/A"

    @property
    def transaction_type(self) -> TransactionType:
        return self.type


@dataclass
class LedgerAggregate:
    opening_balance: Decimal
    totals: LedgerTotals
    category_summary: dict[str, Decimal]
    lines: list[LedgerLine]
    alerts: list[str] = field(default_factory=list)

    @property
    def total_receivables(self) -> Decimal:
        return self.totals.receivables

    @property
    def total_payables(self) -> Decimal:
        return self.totals.payables

    @property
    def closing_balance(self) -> Decimal:
        return closing_balance(self.opening_balance, self.totals)

    @property
    def transaction_count(self) -> int:
        return len(self.lines)


def normalize_category(category: str | None) -> str:
    if category is None:
        return UNCATEGORIZED
    cleaned = category.strip()
    return cleaned or UNCATEGORIZED


def credit_of(transaction: Transaction) -> Decimal:
    if transaction.transaction_type == TransactionType.RECEIVABLE:
        return to_number(transaction.receivable)
    return _ZERO


def debit_of(transaction: Transaction) -> Decimal:
    if transaction.transaction_type == TransactionType.PAYABLE:
        return to_number(transaction.payable)
    return _ZERO


def signed_delta(transaction: Transaction) -> Decimal:
    """+receivable for receivable entries, -payable for payable entries."""
    return credit_of(transaction) - debit_of(transaction)


def compute_totals(transactions: Iterable[Transaction]) -> LedgerTotals:
    receivables = _ZERO
    payables = _ZERO
    receivable_count = 0
    payable_count = 0
    for txn in transactions:
        if txn.transaction_type == TransactionType.RECEIVABLE:
            receivables += to_number(txn.receivable)
            receivable_count += 1
        elif txn.transaction_type == TransactionType.PAYABLE:
            payables += to_number(txn.payable)
            payable_count += 1
    return LedgerTotals(
        receivables=receivables,
        payables=payables,
        receivable_count=receivable_count,
        payable_count=payable_count,
    )


def summarize_categories(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Signed net per category, in order of first occurrence."""
    summary: dict[str, Decimal] = {}
    for txn in transactions:
        amount = to_number(txn.total_amount)
        if txn.transaction_type == TransactionType.PAYABLE:
            amount = -amount
        key = normalize_category(txn.category)
        summary[key] = summary.get(key, _ZERO) + amount
    return summary


def closing_balance(opening_balance: Decimal, totals: LedgerTotals) -> Decimal:
    return to_number(opening_balance) + totals.receivables - totals.payables


def sort_chronologically(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Ascending by ledger date.

    The sort is stable, so entries sharing the same instant keep the order the
    store returned them in. That order is not guaranteed across queries.
    """
    return sorted(transactions, key=lambda txn: as_utc(txn.date) or _EPOCH)


def calculate_running_balance(
    transactions: Sequence[Transaction], opening_balance: Decimal
) -> list[tuple[Transaction, Decimal]]:
    """Pair every transaction (date ascending) with the balance after it."""
    running = to_number(opening_balance)
    rows: list[tuple[Transaction, Decimal]] = []
    for txn in sort_chronologically(transactions):
        running = running + credit_of(txn) - debit_of(txn)
        rows.append((txn, running))
    return rows


def build_alerts(
    totals: LedgerTotals,
    closing: Decimal,
    transaction_count: int,
    *,
    flag_empty: bool = True,
) -> list[str]:
    alerts: list[str] = []
    if transaction_count == 0 and flag_empty:
        alerts.append(NO_TRANSACTIONS_ALERT)
    if closing < 0:
        alerts.append(NEGATIVE_BALANCE_ALERT)
    threshold = settings.large_amount_threshold
    if abs(totals.receivables) > threshold or abs(totals.payables) > threshold:
        alerts.append(LARGE_AMOUNTS_ALERT)
    return alerts


def _customer_name(txn: Transaction) -> str:
    customer = txn.customer
    if customer is None or not customer.name:
        return "Unknown Customer"
    return customer.name


def to_line(txn: Transaction, running_balance: Decimal | None = None) -> LedgerLine:
    total = to_number(txn.total_amount)
    amount = credit_of(txn) if txn.transaction_type == TransactionType.RECEIVABLE else debit_of(txn)
    return LedgerLine(
        id=txn.id,
        date=as_utc(txn.date),
        type=txn.transaction_type,
        customer_id=txn.customer_id,
        customer_name=_customer_name(txn),
        description=txn.description,
        category=normalize_category(txn.category),
        payment_method=txn.payment_method,
        total_amount=total,
        payable=to_number(txn.payable),
        receivable=to_number(txn.receivable),
        amount=amount,
        remaining_amount=max(_ZERO, total - amount),
        due_date=as_utc(txn.due_date),
        is_recurring=bool(txn.is_recurring),
        transaction_image=txn.transaction_image,
        created_at=as_utc(txn.created_at),
        running_balance=running_balance,
    )


def aggregate_ledger(
    transactions: Sequence[Transaction],
    opening_balance: Decimal,
    *,
    with_running_balance: bool = False,
    flag_empty: bool = True,
) -> LedgerAggregate:
    """Aggregate a filtered transaction set.

    Without running balances the lines are newest first (summary report order);
    with running balances they are oldest first so the balance column reads
    top to bottom.
    """
    opening = to_number(opening_balance)
    totals = compute_totals(transactions)
    categories = summarize_categories(transactions)

    if with_running_balance:
        lines = [to_line(txn, balance) for txn, balance in calculate_running_balance(transactions, opening)]
    else:
        ordered = list(reversed(sort_chronologically(transactions)))
        lines = [to_line(txn) for txn in ordered]

    closing = closing_balance(opening, totals)
    return LedgerAggregate(
        opening_balance=opening,
        totals=totals,
        category_summary=categories,
        lines=lines,
        alerts=build_alerts(totals, closing, len(lines), flag_empty=flag_empty),
    )
