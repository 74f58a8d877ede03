"""Services package."""

from shop_ledger.services.aggregation import LedgerAggregate, aggregate_ledger, calculate_running_balance
from shop_ledger.services.balances import (
    SettingsNotFoundError,
    ShopNotFoundError,
    resolve_opening_balance,
)
from shop_ledger.services.dashboard import get_dashboard_summary
from shop_ledger.services.ledger import (
    CustomerNotFoundError,
    LedgerValidationError,
    OpeningBalanceLockedError,
    TransactionNotFoundError,
    create_transaction,
    delete_transaction,
    set_opening_balance,
    update_transaction,
)
from shop_ledger.services.reporting import (
    ReportGenerationFailedError,
    ReportRequest,
    generate_daily_report,
    generate_summary_report,
)
from shop_ledger.services.storage import StorageError, StorageService

__all__ = [
    "CustomerNotFoundError",
    "LedgerAggregate",
    "LedgerValidationError",
    "OpeningBalanceLockedError",
    "ReportGenerationFailedError",
    "ReportRequest",
    "SettingsNotFoundError",
    "ShopNotFoundError",
    "StorageError",
    "StorageService",
    "TransactionNotFoundError",
    "aggregate_ledger",
    "calculate_running_balance",
    "create_transaction",
    "delete_transaction",
    "generate_daily_report",
    "generate_summary_report",
    "get_dashboard_summary",
    "resolve_opening_balance",
    "set_opening_balance",
    "update_transaction",
]
