"""Pydantic schemas for report and dashboard endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from shop_ledger.models import TransactionType
from shop_ledger.schemas.base import CamelModel, Money


class DateRange(CamelModel):
    start_date: str | None = None
    end_date: str | None = None


class ReportTransaction(CamelModel):
    """One ledger line as returned by the report endpoints."""

    id: UUID | None = None
    date: datetime | None = None
    type: TransactionType
    transaction_type: TransactionType | None = None
    customer_id: UUID | None = None
    customer_name: str
    description: str | None = None
    category: str
    payment_method: str | None = None
    total_amount: Money
    payable: Money
    receivable: Money
    amount: Money
    remaining_amount: Money
    due_date: datetime | None = None
    is_recurring: bool = False
    transaction_image: str | None = None
    created_at: datetime | None = None
    formatted_date: str
    running_balance: Money | None = None


class ReportMetadata(CamelModel):
    date_range: DateRange
    transaction_count: int
    customer_id: UUID | None = None
    shop_id: str


class ReportResultResponse(CamelModel):
    total_receivables: Money
    total_payables: Money
    balance: Money
    opening_balance: Money
    category_summary: dict[str, Money] = Field(default_factory=dict)
    transactions: list[ReportTransaction] = Field(default_factory=list)
    alerts: list[str] = Field(default_factory=list)
    metadata: ReportMetadata


class ReportArtifactResponse(CamelModel):
    url: str


class DashboardMetadata(CamelModel):
    date_range: DateRange
    transaction_count: int
    receivable_count: int
    payable_count: int
    shop_id: str


class DashboardResponse(CamelModel):
    total_receivables: Money
    total_payables: Money
    balance: Money
    opening_balance: Money
    alerts: list[str] = Field(default_factory=list)
    recent_transactions: list[ReportTransaction] = Field(default_factory=list)
    metadata: DashboardMetadata
