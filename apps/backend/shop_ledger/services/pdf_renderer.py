"""PDF rendering for summary and daily ledger reports.

Drawing is done directly on a reportlab canvas. Every draw helper receives the
canvas and the ``RenderCursor`` for the document being produced; the cursor
decides when a page is full and records which pages carry body content so the
finished document can be checked (and trimmed) with pypdf.
"""

from __future__ import annotations

import io
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib.colors import Color
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen.canvas import Canvas

from shop_ledger.config import settings
from shop_ledger.logger import get_logger, log_timing
from shop_ledger.models import TransactionType
from shop_ledger.services.aggregation import LedgerLine
from shop_ledger.services.report_layout import (
    BOTTOM_LIMIT,
    CATEGORY_TABLE,
    CONTENT_WIDTH,
    DAILY_TABLE,
    MARGIN,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    PALETTE,
    TRANSACTION_TABLE,
    RenderCursor,
    ReportDocument,
    TableLayout,
    format_currency,
    sign_color,
    transaction_label,
    truncate_description,
)

logger = get_logger(__name__)

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
BODY_SIZE = 9
LOGO_SIZE = 50.0
SECTION_TITLE_HEIGHT = 22.0
SUMMARY_LINE_HEIGHT = 16.0
CHEAP_HEADER_HEIGHT = 28.0


class PdfRenderError(Exception):
    """Raised when a PDF document cannot be produced."""


@dataclass(frozen=True)
class RenderedDocument:
    content: bytes
    page_count: int
    rows_per_page: list[int]


def _fit_text(text: str, width: float, font: str = FONT, size: float = BODY_SIZE) -> str:
    """Clip ``text`` with an ellipsis so it fits in ``width`` points."""
    if stringWidth(text, font, size) <= width:
        return text
    ellipsis = "..."
    while text and stringWidth(text + ellipsis, font, size) > width:
        text = text[:-1]
    return text + ellipsis


# =============================================================================
# Page furniture
# =============================================================================


def _draw_footer(pdf: Canvas, cursor: RenderCursor, doc: ReportDocument) -> None:
    pdf.setStrokeColor(PALETTE.rule)
    pdf.line(MARGIN, BOTTOM_LIMIT - 8, PAGE_WIDTH - MARGIN, BOTTOM_LIMIT - 8)
    pdf.setFont(FONT, 8)
    pdf.setFillColor(PALETTE.muted)
    pdf.drawString(MARGIN, MARGIN + 6, doc.site_name)
    pdf.drawRightString(PAGE_WIDTH - MARGIN, MARGIN + 6, f"Page {cursor.page_number}")


def _draw_cheap_header(pdf: Canvas, cursor: RenderCursor, doc: ReportDocument) -> None:
    pdf.setFont(FONT_BOLD, 10)
    pdf.setFillColor(PALETTE.primary)
    pdf.drawString(MARGIN, cursor.y - 12, _fit_text(doc.site_name, CONTENT_WIDTH / 2, FONT_BOLD, 10))
    pdf.setFont(FONT, 9)
    pdf.setFillColor(PALETTE.muted)
    pdf.drawRightString(PAGE_WIDTH - MARGIN, cursor.y - 12, f"{doc.title} ({doc.period_label})")
    pdf.setStrokeColor(PALETTE.rule)
    pdf.line(MARGIN, cursor.y - 18, PAGE_WIDTH - MARGIN, cursor.y - 18)
    cursor.advance(CHEAP_HEADER_HEIGHT)


def _break_page(
    pdf: Canvas,
    cursor: RenderCursor,
    doc: ReportDocument,
    table: TableLayout | None = None,
) -> None:
    _draw_footer(pdf, cursor, doc)
    pdf.showPage()
    cursor.next_page()
    _draw_cheap_header(pdf, cursor, doc)
    if table is not None:
        _draw_table_header(pdf, cursor, table)


def _ensure_space(
    pdf: Canvas,
    cursor: RenderCursor,
    doc: ReportDocument,
    height: float,
    table: TableLayout | None = None,
) -> None:
    if not cursor.fits(height):
        _break_page(pdf, cursor, doc, table)


# =============================================================================
# Bands
# =============================================================================


def _draw_logo(pdf: Canvas, cursor: RenderCursor, logo: bytes | None) -> bool:
    if not logo:
        return False
    try:
        image = ImageReader(io.BytesIO(logo))
        pdf.drawImage(
            image,
            MARGIN,
            cursor.y - LOGO_SIZE,
            width=LOGO_SIZE,
            height=LOGO_SIZE,
            preserveAspectRatio=True,
            mask="auto",
        )
    except Exception as exc:
        logger.warning("Logo could not be drawn, using text fallback", error=str(exc))
        return False
    return True


def _draw_header(pdf: Canvas, cursor: RenderCursor, doc: ReportDocument) -> None:
    top = cursor.y
    if not _draw_logo(pdf, cursor, doc.logo):
        pdf.setFont(FONT_BOLD, 10)
        pdf.setFillColor(PALETTE.primary)
        pdf.drawString(MARGIN, top - 20, settings.default_site_name)

    text_x = MARGIN + LOGO_SIZE + 16
    text_width = PAGE_WIDTH - MARGIN - text_x
    pdf.setFillColor(PALETTE.primary)
    pdf.setFont(FONT_BOLD, 16)
    pdf.drawString(text_x, top - 16, _fit_text(doc.site_name, text_width, FONT_BOLD, 16))
    pdf.setFont(FONT_BOLD, 12)
    pdf.setFillColor(PALETTE.text)
    pdf.drawString(text_x, top - 34, doc.title)

    pdf.setFont(FONT, 9)
    pdf.setFillColor(PALETTE.muted)
    line_y = top - 50
    if doc.subject_label:
        pdf.drawString(text_x, line_y, _fit_text(doc.subject_label, text_width))
        line_y -= 12
    pdf.drawString(text_x, line_y, f"Period: {doc.period_label}")
    line_y -= 12
    pdf.drawString(text_x, line_y, f"Generated: {doc.generated_at.strftime('%Y-%m-%d %H:%M UTC')}")

    bottom = min(top - LOGO_SIZE, line_y) - 10
    pdf.setStrokeColor(PALETTE.primary)
    pdf.setLineWidth(1.5)
    pdf.line(MARGIN, bottom, PAGE_WIDTH - MARGIN, bottom)
    pdf.setLineWidth(1)
    cursor.advance(top - bottom + 12)
    cursor.mark_content()


def _draw_section_title(pdf: Canvas, cursor: RenderCursor, title: str) -> None:
    pdf.setFont(FONT_BOLD, 12)
    pdf.setFillColor(PALETTE.primary)
    pdf.drawString(MARGIN, cursor.y - 15, title)
    cursor.advance(SECTION_TITLE_HEIGHT)
    cursor.mark_content()


def _draw_summary(pdf: Canvas, cursor: RenderCursor, doc: ReportDocument) -> None:
    aggregate = doc.aggregate
    entries: list[tuple[str, Decimal, bool]] = [
        ("Opening Balance", aggregate.opening_balance, False),
        ("Total Receivables", aggregate.total_receivables, False),
        ("Total Payables", aggregate.total_payables, False),
        ("Closing Balance", aggregate.closing_balance, True),
    ]
    _ensure_space(pdf, cursor, doc, SECTION_TITLE_HEIGHT + SUMMARY_LINE_HEIGHT * len(entries) + 8)
    _draw_section_title(pdf, cursor, "Summary")
    value_x = MARGIN + CONTENT_WIDTH / 2
    for label, amount, coloured in entries:
        pdf.setFont(FONT_BOLD if coloured else FONT, 10)
        pdf.setFillColor(PALETTE.text)
        pdf.drawString(MARGIN + 4, cursor.y - 12, label)
        pdf.setFillColor(sign_color(amount) if coloured else PALETTE.text)
        pdf.drawRightString(value_x, cursor.y - 12, format_currency(amount, doc.currency))
        cursor.advance(SUMMARY_LINE_HEIGHT)
    cursor.advance(8)


# =============================================================================
# Tables
# =============================================================================


def _draw_table_header(pdf: Canvas, cursor: RenderCursor, table: TableLayout) -> None:
    top = cursor.y
    pdf.setFillColor(PALETTE.primary)
    pdf.rect(MARGIN, top - table.header_height, table.width, table.header_height, stroke=0, fill=1)
    pdf.setFillColor(PALETTE.header_text)
    pdf.setFont(FONT_BOLD, BODY_SIZE)
    baseline = top - table.header_height + 6
    for index, column in enumerate(table.columns):
        _draw_cell(pdf, table, index, baseline, column.label, FONT_BOLD)
    cursor.advance(table.header_height)


def _draw_cell(
    pdf: Canvas,
    table: TableLayout,
    index: int,
    baseline: float,
    text: str,
    font: str = FONT,
) -> None:
    column = table.columns[index]
    fitted = _fit_text(text, column.width - 2 * table.padding, font)
    x = table.text_x(index)
    if column.align == "right":
        pdf.drawRightString(x, baseline, fitted)
    elif column.align == "center":
        pdf.drawCentredString(x, baseline, fitted)
    else:
        pdf.drawString(x, baseline, fitted)


def _draw_row(
    pdf: Canvas,
    cursor: RenderCursor,
    doc: ReportDocument,
    table: TableLayout,
    cells: Sequence[str],
    *,
    index: int,
    amount_colors: dict[int, Color] | None = None,
    fill: Color | None = None,
    bold: bool = False,
    counted: bool = True,
) -> None:
    """Draw one fixed-height row, breaking the page first when it will not fit."""
    _ensure_space(pdf, cursor, doc, table.row_height, table)
    top = cursor.y
    background = fill or (PALETTE.row_alt if index % 2 else PALETTE.row_plain)
    pdf.setFillColor(background)
    pdf.rect(MARGIN, top - table.row_height, table.width, table.row_height, stroke=0, fill=1)

    font = FONT_BOLD if bold else FONT
    pdf.setFont(font, BODY_SIZE)
    baseline = top - table.row_height + 5
    for column_index, text in enumerate(cells):
        colour = (amount_colors or {}).get(column_index, PALETTE.text)
        pdf.setFillColor(colour)
        _draw_cell(pdf, table, column_index, baseline, text, font)

    cursor.advance(table.row_height)
    if counted:
        cursor.count_row()
    else:
        cursor.mark_content()


def _start_table(pdf: Canvas, cursor: RenderCursor, doc: ReportDocument, title: str, table: TableLayout) -> None:
    # Title, header and at least one row stay together.
    _ensure_space(pdf, cursor, doc, SECTION_TITLE_HEIGHT + table.header_height + table.row_height)
    _draw_section_title(pdf, cursor, title)
    _draw_table_header(pdf, cursor, table)


def _amount_colour(line: LedgerLine) -> Color:
    return PALETTE.positive if line.type == TransactionType.RECEIVABLE else PALETTE.negative


def _draw_categories(pdf: Canvas, cursor: RenderCursor, doc: ReportDocument) -> None:
    table = CATEGORY_TABLE
    _start_table(pdf, cursor, doc, "Category Summary", table)
    summary = doc.aggregate.category_summary
    if not summary:
        _draw_row(pdf, cursor, doc, table, ["No categories", ""], index=0, counted=False)
    for index, (category, amount) in enumerate(summary.items()):
        _draw_row(
            pdf,
            cursor,
            doc,
            table,
            [category, format_currency(amount, doc.currency)],
            index=index,
            amount_colors={1: sign_color(amount)},
            counted=False,
        )
    cursor.advance(10)


def _draw_transactions(pdf: Canvas, cursor: RenderCursor, doc: ReportDocument) -> None:
    table = TRANSACTION_TABLE
    _start_table(pdf, cursor, doc, "Transactions", table)
    lines = doc.aggregate.lines
    if not lines:
        _draw_row(
            pdf,
            cursor,
            doc,
            table,
            ["", "", "No transactions", "", "", ""],
            index=0,
            counted=False,
        )
    for index, line in enumerate(lines):
        _draw_row(
            pdf,
            cursor,
            doc,
            table,
            [
                transaction_label(line.type),
                line.formatted_date,
                line.customer_name,
                truncate_description(line.description),
                line.category,
                format_currency(line.amount, doc.currency),
            ],
            index=index,
            amount_colors={5: _amount_colour(line)},
        )


def _draw_daily_statement(pdf: Canvas, cursor: RenderCursor, doc: ReportDocument) -> None:
    table = DAILY_TABLE
    aggregate = doc.aggregate
    _start_table(pdf, cursor, doc, "Daily Statement", table)
    _draw_row(
        pdf,
        cursor,
        doc,
        table,
        ["", "Opening Balance", "", "", "", format_currency(aggregate.opening_balance, doc.currency)],
        index=0,
        fill=PALETTE.highlight,
        bold=True,
        counted=False,
    )
    for index, line in enumerate(aggregate.lines, start=1):
        balance = line.running_balance if line.running_balance is not None else aggregate.opening_balance
        _draw_row(
            pdf,
            cursor,
            doc,
            table,
            [
                transaction_label(line.type),
                line.customer_name,
                truncate_description(line.description),
                line.category,
                format_currency(line.amount, doc.currency),
                format_currency(balance, doc.currency),
            ],
            index=index,
            amount_colors={4: _amount_colour(line), 5: sign_color(balance)},
        )
    closing = aggregate.closing_balance
    _draw_row(
        pdf,
        cursor,
        doc,
        table,
        ["", "Closing Balance", "", "", "", format_currency(closing, doc.currency)],
        index=len(aggregate.lines) + 1,
        fill=PALETTE.highlight,
        bold=True,
        amount_colors={5: sign_color(closing)},
        counted=False,
    )


# =============================================================================
# Entry point
# =============================================================================


def _trim_blank_pages(raw: bytes, keep: int) -> tuple[bytes, int]:
    reader = PdfReader(io.BytesIO(raw))
    page_count = len(reader.pages)
    if page_count <= keep:
        return raw, page_count

    writer = PdfWriter()
    for page in reader.pages[:keep]:
        writer.add_page(page)
    buffer = io.BytesIO()
    writer.write(buffer)
    logger.info("Trimmed trailing blank pages", dropped=page_count - keep)
    return buffer.getvalue(), keep


def render_pdf(doc: ReportDocument) -> RenderedDocument:
    """Render ``doc`` to PDF bytes. Blocking; run it in a worker thread."""
    buffer = io.BytesIO()
    pdf = Canvas(buffer, pagesize=(PAGE_WIDTH, PAGE_HEIGHT))
    pdf.setTitle(doc.title)
    pdf.setAuthor(doc.site_name)
    cursor = RenderCursor()

    with log_timing("render_pdf", logger=logger, daily=doc.daily, rows=len(doc.aggregate.lines)) as timing:
        try:
            _draw_header(pdf, cursor, doc)
            _draw_summary(pdf, cursor, doc)
            if doc.daily:
                _draw_daily_statement(pdf, cursor, doc)
            else:
                _draw_categories(pdf, cursor, doc)
                _draw_transactions(pdf, cursor, doc)
            _draw_footer(pdf, cursor, doc)
            pdf.showPage()
            pdf.save()
            content, page_count = _trim_blank_pages(buffer.getvalue(), cursor.content_pages)
        except (ValueError, TypeError, OSError, PyPdfError) as exc:
            raise PdfRenderError(f"Failed to render PDF: {exc}") from exc
        timing["pages"] = page_count
        timing["size_bytes"] = len(content)

    return RenderedDocument(
        content=content,
        page_count=page_count,
        rows_per_page=cursor.rows_per_page[:page_count],
    )
