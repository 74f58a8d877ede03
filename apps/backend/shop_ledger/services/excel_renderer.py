"""Spreadsheet (XLSX) rendering for summary and daily ledger reports."""

from __future__ import annotations

import io
from decimal import Decimal
from typing import Any

from openpyxl import Workbook
from openpyxl.drawing.image import Image as XLImage
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from shop_ledger.config import settings
from shop_ledger.logger import get_logger, log_timing
from shop_ledger.models import TransactionType
from shop_ledger.services.normalize import round_money
from shop_ledger.services.report_layout import (
    XLSX_HIGHLIGHT,
    XLSX_NEGATIVE,
    XLSX_POSITIVE,
    XLSX_PRIMARY,
    XLSX_ROW_ALT,
    ReportDocument,
    transaction_label,
    truncate_description,
)

logger = get_logger(__name__)

SHEET_TITLE = "Financial Report"
MAX_COLUMN_WIDTH = 50
LOGO_HEIGHT_PX = 60

SUMMARY_HEADERS = ["Type", "Date", "Customer", "Description", "Category", "Amount"]
DAILY_HEADERS = ["Type", "Customer", "Description", "Category", "Amount", "Running Balance"]

_THIN = Side(style="thin", color="FFCCCCCC")
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
_HEADER_FILL = PatternFill(start_color=XLSX_PRIMARY, end_color=XLSX_PRIMARY, fill_type="solid")
_HEADER_FONT = Font(bold=True, color="FFFFFFFF")
_ALT_FILL = PatternFill(start_color=XLSX_ROW_ALT, end_color=XLSX_ROW_ALT, fill_type="solid")
_HIGHLIGHT_FILL = PatternFill(start_color=XLSX_HIGHLIGHT, end_color=XLSX_HIGHLIGHT, fill_type="solid")


class ExcelRenderError(Exception):
    """Raised when a workbook cannot be produced."""


def _money_format(currency: str) -> str:
    return f'"{currency} "#,##0.00;-"{currency} "#,##0.00'


def _amount_font(amount: Decimal, *, bold: bool = False) -> Font:
    return Font(bold=bold, color=XLSX_NEGATIVE if amount < 0 else XLSX_POSITIVE)


def _write_title(ws: Worksheet, doc: ReportDocument, width: int) -> int:
    """Merged title rows; returns the next free row."""
    last_column = get_column_letter(width)
    lines: list[tuple[str, Font]] = [
        (doc.site_name, Font(bold=True, size=16, color=XLSX_PRIMARY)),
        (doc.title, Font(bold=True, size=13)),
    ]
    if doc.subject_label:
        lines.append((doc.subject_label, Font(italic=True)))
    lines.append((f"Period: {doc.period_label}", Font(color="FF777777")))
    lines.append((f"Generated: {doc.generated_at.strftime('%Y-%m-%d %H:%M UTC')}", Font(color="FF777777")))

    # Column A is reserved for the logo on the title rows.
    for row, (text, font) in enumerate(lines, start=1):
        ws.merge_cells(f"B{row}:{last_column}{row}")
        cell = ws.cell(row=row, column=2, value=text)
        cell.font = font
        cell.alignment = Alignment(horizontal="left", vertical="center")

    if not _embed_logo(ws, doc.logo):
        ws.cell(row=1, column=1, value=settings.default_site_name).font = Font(bold=True, color=XLSX_PRIMARY)
    return len(lines) + 2


def _embed_logo(ws: Worksheet, logo: bytes | None) -> bool:
    if not logo:
        return False
    try:
        image = XLImage(io.BytesIO(logo))
        ratio = LOGO_HEIGHT_PX / image.height if image.height else 1
        image.height = LOGO_HEIGHT_PX
        image.width = int(image.width * ratio)
        ws.add_image(image, "A1")
    except Exception as exc:
        logger.warning("Logo could not be embedded, using text fallback", error=str(exc))
        return False
    return True


def _write_summary(ws: Worksheet, doc: ReportDocument, row: int) -> int:
    aggregate = doc.aggregate
    money = _money_format(doc.currency)
    ws.cell(row=row, column=1, value="Summary").font = Font(bold=True, size=12, color=XLSX_PRIMARY)
    row += 1
    entries = [
        ("Opening Balance", aggregate.opening_balance, False),
        ("Total Receivables", aggregate.total_receivables, False),
        ("Total Payables", aggregate.total_payables, False),
        ("Closing Balance", aggregate.closing_balance, True),
    ]
    for label, amount, coloured in entries:
        ws.cell(row=row, column=1, value=label).font = Font(bold=coloured)
        cell = ws.cell(row=row, column=2, value=round_money(amount))
        cell.number_format = money
        if coloured:
            cell.font = _amount_font(amount, bold=True)
        row += 1
    return row + 1


def _write_header_row(ws: Worksheet, row: int, headers: list[str]) -> None:
    for column, header in enumerate(headers, start=1):
        cell = ws.cell(row=row, column=column, value=header)
        cell.fill = _HEADER_FILL
        cell.font = _HEADER_FONT
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = _BORDER


def _write_row(
    ws: Worksheet,
    row: int,
    values: list[Any],
    *,
    money_columns: dict[int, Decimal],
    currency: str,
    fill: PatternFill | None = None,
    bold: bool = False,
) -> None:
    for column, value in enumerate(values, start=1):
        cell = ws.cell(row=row, column=column, value=value)
        cell.border = _BORDER
        if fill is not None:
            cell.fill = fill
        if bold:
            cell.font = Font(bold=True)
        if column in money_columns:
            cell.value = round_money(money_columns[column])
            cell.number_format = _money_format(currency)
            cell.font = _amount_font(money_columns[column], bold=bold)
            cell.alignment = Alignment(horizontal="right")


def _write_categories(ws: Worksheet, doc: ReportDocument, row: int) -> int:
    ws.cell(row=row, column=1, value="Category Summary").font = Font(bold=True, size=12, color=XLSX_PRIMARY)
    row += 1
    _write_header_row(ws, row, ["Category", "Net Amount"])
    row += 1
    summary = doc.aggregate.category_summary
    if not summary:
        _write_row(ws, row, ["No categories", ""], money_columns={}, currency=doc.currency)
        row += 1
    for index, (category, amount) in enumerate(summary.items()):
        _write_row(
            ws,
            row,
            [category, None],
            money_columns={2: amount},
            currency=doc.currency,
            fill=_ALT_FILL if index % 2 else None,
        )
        row += 1
    return row + 1


def _signed_line_amount(transaction_type: TransactionType, amount: Decimal) -> Decimal:
    return amount if transaction_type == TransactionType.RECEIVABLE else -amount


def _write_transactions(ws: Worksheet, doc: ReportDocument, row: int) -> int:
    ws.cell(row=row, column=1, value="Transactions").font = Font(bold=True, size=12, color=XLSX_PRIMARY)
    row += 1
    _write_header_row(ws, row, SUMMARY_HEADERS)
    row += 1
    lines = doc.aggregate.lines
    if not lines:
        _write_row(ws, row, ["No transactions"], money_columns={}, currency=doc.currency)
        row += 1
    for index, line in enumerate(lines):
        _write_row(
            ws,
            row,
            [
                transaction_label(line.type),
                line.formatted_date,
                line.customer_name,
                truncate_description(line.description),
                line.category,
                None,
            ],
            money_columns={6: _signed_line_amount(line.type, line.amount)},
            currency=doc.currency,
            fill=_ALT_FILL if index % 2 else None,
        )
        row += 1
    return row


def _write_daily_statement(ws: Worksheet, doc: ReportDocument, row: int) -> int:
    aggregate = doc.aggregate
    ws.cell(row=row, column=1, value="Daily Statement").font = Font(bold=True, size=12, color=XLSX_PRIMARY)
    row += 1
    _write_header_row(ws, row, DAILY_HEADERS)
    row += 1
    _write_row(
        ws,
        row,
        ["", "Opening Balance", "", "", "", None],
        money_columns={6: aggregate.opening_balance},
        currency=doc.currency,
        fill=_HIGHLIGHT_FILL,
        bold=True,
    )
    row += 1
    for index, line in enumerate(aggregate.lines):
        balance = line.running_balance if line.running_balance is not None else aggregate.opening_balance
        _write_row(
            ws,
            row,
            [
                transaction_label(line.type),
                line.customer_name,
                truncate_description(line.description),
                line.category,
                None,
                None,
            ],
            money_columns={5: _signed_line_amount(line.type, line.amount), 6: balance},
            currency=doc.currency,
            fill=_ALT_FILL if index % 2 else None,
        )
        row += 1
    _write_row(
        ws,
        row,
        ["", "Closing Balance", "", "", "", None],
        money_columns={6: aggregate.closing_balance},
        currency=doc.currency,
        fill=_HIGHLIGHT_FILL,
        bold=True,
    )
    return row + 1


def _autosize_columns(ws: Worksheet, first_row: int) -> None:
    widths: dict[int, int] = {}
    for row in ws.iter_rows(min_row=first_row):
        for cell in row:
            if cell.value is None:
                continue
            length = len(str(cell.value)) + 4
            widths[cell.column] = max(widths.get(cell.column, 0), length)
    for column, width in widths.items():
        ws.column_dimensions[get_column_letter(column)].width = min(width, MAX_COLUMN_WIDTH)


def render_excel(doc: ReportDocument) -> bytes:
    """Render ``doc`` to XLSX bytes. Blocking; run it in a worker thread."""
    headers = DAILY_HEADERS if doc.daily else SUMMARY_HEADERS
    with log_timing("render_excel", logger=logger, daily=doc.daily, rows=len(doc.aggregate.lines)) as timing:
        try:
            wb = Workbook()
            ws = wb.active
            ws.title = SHEET_TITLE

            row = _write_title(ws, doc, len(headers))
            body_start = row
            row = _write_summary(ws, doc, row)
            if doc.daily:
                _write_daily_statement(ws, doc, row)
            else:
                row = _write_categories(ws, doc, row)
                _write_transactions(ws, doc, row)
            _autosize_columns(ws, body_start)

            buffer = io.BytesIO()
            wb.save(buffer)
        except (ValueError, TypeError, OSError) as exc:
            raise ExcelRenderError(f"Failed to render spreadsheet: {exc}") from exc
        content = buffer.getvalue()
        timing["size_bytes"] = len(content)
    return content
