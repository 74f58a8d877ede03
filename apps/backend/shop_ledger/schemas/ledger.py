"""Pydantic schemas for transactions, customers and shop settings."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import Field

from shop_ledger.models import TransactionType
from shop_ledger.schemas.base import CamelModel, Money

NonNegative = Annotated[Decimal, Field(ge=0, max_digits=18, decimal_places=2)]


class TransactionCreate(CamelModel):
    """Either ``customer_id`` or ``customer_name`` identifies the customer."""

    customer_id: UUID | None = None
    customer_name: Annotated[str | None, Field(None, max_length=200)] = None
    phone: Annotated[str | None, Field(None, max_length=50)] = None
    transaction_type: TransactionType
    total_amount: NonNegative
    payable: NonNegative | None = None
    receivable: NonNegative | None = None
    description: str | None = None
    category: Annotated[str | None, Field(None, max_length=100)] = None
    payment_method: Annotated[str, Field(max_length=50)] = "Cash"
    transaction_image: Annotated[str | None, Field(None, max_length=1000)] = None
    is_recurring: bool = False
    date: datetime | None = None
    due_date: datetime | None = None


class TransactionUpdate(CamelModel):
    customer_id: UUID | None = None
    transaction_type: TransactionType | None = None
    total_amount: NonNegative | None = None
    payable: NonNegative | None = None
    receivable: NonNegative | None = None
    description: str | None = None
    category: Annotated[str | None, Field(None, max_length=100)] = None
    payment_method: Annotated[str | None, Field(None, max_length=50)] = None
    transaction_image: Annotated[str | None, Field(None, max_length=1000)] = None
    is_recurring: bool | None = None
    date: datetime | None = None
    due_date: datetime | None = None


class CustomerResponse(CamelModel):
    id: UUID
    shop_id: UUID
    name: str
    phone: str | None = None
    address: str | None = None
    balance: Money


class TransactionResponse(CamelModel):
    id: UUID
    shop_id: UUID
    customer_id: UUID
    transaction_type: TransactionType
    total_amount: Money
    payable: Money
    receivable: Money
    description: str | None = None
    category: str | None = None
    payment_method: str
    transaction_image: str | None = None
    is_recurring: bool
    date: datetime
    due_date: datetime | None = None
    created_at: datetime


class TransactionWithCustomerResponse(CamelModel):
    transaction: TransactionResponse
    customer: CustomerResponse


class OpeningBalanceUpdate(CamelModel):
    shop_id: UUID | None = None
    opening_balance: Annotated[Decimal, Field(max_digits=18, decimal_places=2)]


class SettingResponse(CamelModel):
    id: UUID
    shop_id: UUID
    site_name: str
    phone: str | None = None
    logo: str | None = None
    opening_balance: Money | None = None
    opening_balance_set: bool
    currency: str
