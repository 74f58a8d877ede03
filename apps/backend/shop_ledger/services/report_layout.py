"""Layout primitives shared by the PDF and spreadsheet renderers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Literal

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4

from shop_ledger.models import TransactionType
from shop_ledger.services.aggregation import LedgerAggregate
from shop_ledger.services.normalize import round_money, to_number

Align = Literal["left", "right", "center"]

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 40.0
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
FOOTER_HEIGHT = 30.0
BOTTOM_LIMIT = MARGIN + FOOTER_HEIGHT

DESCRIPTION_LIMIT = 10


class Palette:
    primary = colors.HexColor("#1F4E79")
    header_text = colors.white
    text = colors.HexColor("#333333")
    muted = colors.HexColor("#777777")
    row_alt = colors.HexColor("#F2F6FA")
    row_plain = colors.white
    highlight = colors.HexColor("#FFF4CE")
    positive = colors.HexColor("#1E7B34")
    negative = colors.HexColor("#C0392B")
    rule = colors.HexColor("#CCCCCC")


PALETTE = Palette()

# Same colours as ARGB hex for openpyxl.
XLSX_PRIMARY = "FF1F4E79"
XLSX_ROW_ALT = "FFF2F6FA"
XLSX_HIGHLIGHT = "FFFFF4CE"
XLSX_POSITIVE = "FF1E7B34"
XLSX_NEGATIVE = "FFC0392B"


def format_currency(amount: Decimal | int | float | str | None, currency: str = "PKR") -> str:
    """``PKR 1,234.50``; negatives as ``-PKR 1,234.50``."""
    value = round_money(to_number(amount))
    sign = "-" if value < 0 else ""
    return f"{sign}{currency} {abs(value):,.2f}"


def truncate_description(text: str | None, limit: int = DESCRIPTION_LIMIT) -> str:
    if text is None:
        return "N/A"
    cleaned = text.strip()
    if not cleaned:
        return "N/A"
    if len(cleaned) <= limit:
        return cleaned
    return f"{cleaned[:limit]}..."


def transaction_label(transaction_type: TransactionType | str) -> str:
    value = transaction_type.value if isinstance(transaction_type, TransactionType) else str(transaction_type)
    return "Credit" if value == TransactionType.RECEIVABLE.value else "Debit"


def sign_color(amount: Decimal) -> colors.Color:
    return PALETTE.negative if amount < 0 else PALETTE.positive


@dataclass(frozen=True)
class TableColumn:
    key: str
    label: str
    width: float
    align: Align = "left"


@dataclass
class TableLayout:
    """Column geometry for one table, computed once from relative widths."""

    columns: list[TableColumn]
    row_height: float = 18.0
    header_height: float = 20.0
    padding: float = 4.0
    x_positions: list[float] = field(init=False)

    def __post_init__(self) -> None:
        total = sum(column.width for column in self.columns)
        scale = CONTENT_WIDTH / total
        self.columns = [
            TableColumn(column.key, column.label, column.width * scale, column.align) for column in self.columns
        ]
        x = MARGIN
        self.x_positions = []
        for column in self.columns:
            self.x_positions.append(x)
            x += column.width

    @property
    def width(self) -> float:
        return CONTENT_WIDTH

    def text_x(self, index: int) -> float:
        """Anchor x for a cell's text given the column alignment."""
        column = self.columns[index]
        left = self.x_positions[index]
        if column.align == "right":
            return left + column.width - self.padding
        if column.align == "center":
            return left + column.width / 2
        return left + self.padding


CATEGORY_TABLE = TableLayout(
    columns=[
        TableColumn("category", "Category", 3),
        TableColumn("amount", "Net Amount", 2, "right"),
    ]
)

TRANSACTION_TABLE = TableLayout(
    columns=[
        TableColumn("type", "Type", 1.0),
        TableColumn("date", "Date", 1.4),
        TableColumn("customer", "Customer", 1.8),
        TableColumn("description", "Description", 1.8),
        TableColumn("category", "Category", 1.4),
        TableColumn("amount", "Amount", 1.8, "right"),
    ]
)

DAILY_TABLE = TableLayout(
    columns=[
        TableColumn("type", "Type", 1.0),
        TableColumn("customer", "Customer", 1.8),
        TableColumn("description", "Description", 1.8),
        TableColumn("category", "Category", 1.4),
        TableColumn("amount", "Amount", 1.8, "right"),
        TableColumn("balance", "Running Balance", 2.0, "right"),
    ]
)


@dataclass
class RenderCursor:
    """Vertical draw position and per-page bookkeeping for one document."""

    y: float = PAGE_HEIGHT - MARGIN
    page_index: int = 0
    page_has_content: list[bool] = field(default_factory=lambda: [False])
    rows_per_page: list[int] = field(default_factory=lambda: [0])

    @property
    def page_number(self) -> int:
        return self.page_index + 1

    def fits(self, height: float) -> bool:
        return self.y - height >= BOTTOM_LIMIT

    def advance(self, height: float) -> None:
        self.y -= height

    def mark_content(self) -> None:
        self.page_has_content[self.page_index] = True

    def count_row(self) -> None:
        self.rows_per_page[self.page_index] += 1
        self.mark_content()

    def next_page(self) -> None:
        self.page_index += 1
        self.y = PAGE_HEIGHT - MARGIN
        self.page_has_content.append(False)
        self.rows_per_page.append(0)

    @property
    def content_pages(self) -> int:
        """Pages up to and including the last one with body content."""
        for index in range(len(self.page_has_content) - 1, -1, -1):
            if self.page_has_content[index]:
                return index + 1
        return 1


@dataclass(frozen=True)
class ReportDocument:
    """Everything a renderer needs, resolved up front so drawing stays synchronous."""

    title: str
    site_name: str
    currency: str
    aggregate: LedgerAggregate
    period_label: str
    generated_at: datetime
    subject_label: str | None = None
    logo: bytes | None = None
    daily: bool = False


def period_label(start: datetime | None, end: datetime | None) -> str:
    if start is None and end is None:
        return "All time"
    start_text = start.date().isoformat() if start else "Beginning"
    end_text = end.date().isoformat() if end else "Present"
    if start_text == end_text:
        return start_text
    return f"{start_text} to {end_text}"
