from shop_ledger.schemas.ledger import (
    CustomerResponse,
    OpeningBalanceUpdate,
    SettingResponse,
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
    TransactionWithCustomerResponse,
)
from shop_ledger.schemas.reporting import (
    DashboardResponse,
    ReportArtifactResponse,
    ReportResultResponse,
    ReportTransaction,
)

__all__ = [
    "CustomerResponse",
    "DashboardResponse",
    "OpeningBalanceUpdate",
    "ReportArtifactResponse",
    "ReportResultResponse",
    "ReportTransaction",
    "SettingResponse",
    "TransactionCreate",
    "TransactionResponse",
    "TransactionUpdate",
    "TransactionWithCustomerResponse",
]
