"""Summary/daily report generation end to end against the service layer."""

import re
import tempfile
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import select

from shop_ledger.config import settings
from shop_ledger.models import Setting, TransactionType
from shop_ledger.services import reporting
from shop_ledger.services.aggregation import NO_TRANSACTIONS_ALERT
from shop_ledger.services.normalize import InvalidDateError, InvalidRangeError
from shop_ledger.services.pdf_renderer import PdfRenderError
from shop_ledger.services.reporting import (
    InvalidReportFormatError,
    ReportFormat,
    ReportGenerationFailedError,
    ReportRequest,
    generate_daily_report,
    generate_summary_report,
    parse_report_format,
    report_key,
)
from shop_ledger.services.scope import InvalidCustomerIdError, InvalidShopIdError
from shop_ledger.services.storage import StorageError, StorageService
from tests.factories import CustomerFactory, TransactionFactory

PDF_URL = "https://files.example.com/reports/summary.pdf?sig=abc"


@pytest_asyncio.fixture
async def ledger(db, shop, day):
    """Two customers with activity on March 1st and 2nd."""
    ali = await CustomerFactory.create_async(db, shop_id=shop.id, name="Ali")
    bilal = await CustomerFactory.create_async(db, shop_id=shop.id, name="Bilal")
    rows = [
        (ali, "500", False, day(1, hour=10), "Sales"),
        (bilal, "200", True, day(1, hour=11), "Stock"),
        (ali, "300", False, day(2, hour=9), "Sales"),
        (bilal, "50", True, day(2, hour=16), "Rent"),
    ]
    for customer, amount, payable, when, category in rows:
        await TransactionFactory.create_async(
            db,
            shop_id=shop.id,
            customer_id=customer.id,
            amount=Decimal(amount),
            payable_entry=payable,
            date=when,
            category=category,
        )
    await db.commit()
    return {"ali": ali, "bilal": bilal}


@pytest.fixture
def storage():
    fake = MagicMock(spec=StorageService)
    fake.put.return_value = PDF_URL
    return fake


@pytest.fixture
def scratch(tmp_path, monkeypatch):
    """Redirect temporary directories so leftovers can be inspected."""
    directory = tmp_path / "scratch"
    directory.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(directory))
    return directory


class TestSummaryJson:
    async def test_whole_ledger(self, db, shop, ledger):
        payload = await generate_summary_report(db, ReportRequest(shop_id=str(shop.id)))

        assert payload["opening_balance"] == Decimal("1000.00")
        assert payload["total_receivables"] == Decimal("800.00")
        assert payload["total_payables"] == Decimal("250.00")
        assert payload["balance"] == Decimal("1550.00")
        assert payload["category_summary"] == {
            "Sales": Decimal("800.00"),
            "Stock": Decimal("-200.00"),
            "Rent": Decimal("-50.00"),
        }
        assert payload["alerts"] == []
        assert payload["metadata"] == {
            "date_range": {"start_date": None, "end_date": None},
            "transaction_count": 4,
            "customer_id": None,
            "shop_id": str(shop.id),
        }
        dates = [line.date for line in payload["transactions"]]
        assert dates == sorted(dates, reverse=True)

    async def test_window_rolls_prior_activity_into_opening(self, db, shop, ledger):
        request = ReportRequest(shop_id=str(shop.id), start_date="2024-03-02", end_date="2024-03-02")
        payload = await generate_summary_report(db, request)

        assert payload["opening_balance"] == Decimal("1300.00")
        assert payload["total_receivables"] == Decimal("300.00")
        assert payload["total_payables"] == Decimal("50.00")
        assert payload["balance"] == Decimal("1550.00")
        assert payload["metadata"]["date_range"] == {"start_date": "2024-03-02", "end_date": "2024-03-02"}

    async def test_customer_filter(self, db, shop, ledger):
        ali = ledger["ali"]
        request = ReportRequest(shop_id=str(shop.id), start_date="2024-03-02", customer_id=str(ali.id))
        payload = await generate_summary_report(db, request)

        assert payload["opening_balance"] == Decimal("1500.00")
        assert payload["total_receivables"] == Decimal("300.00")
        assert payload["total_payables"] == Decimal("0.00")
        assert payload["metadata"]["customer_id"] == ali.id
        assert {line.customer_name for line in payload["transactions"]} == {"Ali"}

    async def test_empty_window_is_flagged(self, db, shop, ledger):
        request = ReportRequest(shop_id=str(shop.id), start_date="2024-04-01", end_date="2024-04-30")
        payload = await generate_summary_report(db, request)

        assert payload["transactions"] == []
        assert payload["alerts"] == [NO_TRANSACTIONS_ALERT]
        assert payload["balance"] == payload["opening_balance"] == Decimal("1550.00")

    async def test_all_shops(self, db, shop, ledger):
        payload = await generate_summary_report(db, ReportRequest(shop_id="all"))
        assert payload["metadata"]["shop_id"] == "all"
        assert payload["balance"] == Decimal("1550.00")


class TestDailyJson:
    async def test_running_balance(self, db, shop, ledger):
        payload = await generate_daily_report(db, str(shop.id), "2024-03-02")

        assert payload["opening_balance"] == Decimal("1300.00")
        lines = payload["transactions"]
        assert [line.type for line in lines] == [TransactionType.RECEIVABLE, TransactionType.PAYABLE]
        assert [line.running_balance for line in lines] == [Decimal("1600"), Decimal("1550")]
        assert payload["balance"] == Decimal("1550.00")


class TestArtifacts:
    async def test_pdf_upload(self, db, shop, ledger, storage, scratch):
        request = ReportRequest(shop_id=str(shop.id), format="pdf")
        result = await generate_summary_report(db, request, storage=storage)

        assert result == {"url": PDF_URL}
        key, content, content_type = storage.put.call_args.args
        assert key.startswith(f"{settings.report_prefix}/summary-")
        assert key.endswith(".pdf")
        assert content.startswith(b"%PDF")
        assert content_type == "application/pdf"
        assert list(scratch.iterdir()) == []

    async def test_excel_upload(self, db, shop, ledger, storage, scratch):
        result = await generate_daily_report(db, str(shop.id), "2024-03-01", "excel", storage=storage)

        assert result == {"url": PDF_URL}
        key, content, content_type = storage.put.call_args.args
        assert re.match(rf"^{settings.report_prefix}/daily-\d{{8}}T\d{{6}}Z-[0-9a-f]{{8}}\.xlsx$", key)
        assert content[:2] == b"PK"
        assert content_type == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        assert list(scratch.iterdir()) == []

    async def test_storage_failure(self, db, shop, ledger, storage, scratch):
        storage.put.side_effect = StorageError("bucket unavailable")
        request = ReportRequest(shop_id=str(shop.id), format="pdf")

        with pytest.raises(ReportGenerationFailedError, match="bucket unavailable"):
            await generate_summary_report(db, request, storage=storage)
        assert list(scratch.iterdir()) == []

    async def test_render_failure(self, db, shop, ledger, storage, scratch, monkeypatch):
        def broken(_document):
            raise PdfRenderError("font missing")

        monkeypatch.setattr(reporting, "render_pdf", broken)
        with pytest.raises(ReportGenerationFailedError):
            await generate_summary_report(db, ReportRequest(shop_id=str(shop.id), format="pdf"), storage=storage)
        storage.put.assert_not_called()
        assert list(scratch.iterdir()) == []

    async def test_unexpected_render_error(self, db, shop, ledger, storage, scratch, monkeypatch):
        def broken(_document):
            raise KeyError("palette")

        monkeypatch.setattr(reporting, "render_excel", broken)
        with pytest.raises(ReportGenerationFailedError, match="palette") as excinfo:
            await generate_daily_report(db, str(shop.id), "2024-03-01", "excel", storage=storage)
        assert isinstance(excinfo.value.__cause__, KeyError)
        storage.put.assert_not_called()
        assert list(scratch.iterdir()) == []

    async def test_misconfigured_store(self, db, shop, ledger, scratch, monkeypatch):
        monkeypatch.setattr(settings, "s3_endpoint", "not a url")
        request = ReportRequest(shop_id=str(shop.id), format="pdf")

        with pytest.raises(ReportGenerationFailedError, match="Invalid endpoint"):
            await generate_summary_report(db, request)
        assert list(scratch.iterdir()) == []

    async def test_malformed_logo_url_falls_back_to_text(self, db, shop, ledger, storage, scratch):
        setting = await db.scalar(select(Setting).where(Setting.shop_id == shop.id))
        setting.logo = "http://[::1/logo.png"
        await db.commit()

        result = await generate_summary_report(db, ReportRequest(shop_id=str(shop.id), format="pdf"), storage=storage)

        assert result == {"url": PDF_URL}
        assert storage.put.call_args.args[1].startswith(b"%PDF")


class TestValidation:
    @pytest.mark.parametrize(
        ("request_kwargs", "error"),
        [
            ({"start_date": "03/01/2024"}, InvalidDateError),
            ({"start_date": "2024-03-05", "end_date": "2024-03-01"}, InvalidRangeError),
            ({"customer_id": "nope"}, InvalidCustomerIdError),
            ({"format": "docx"}, InvalidReportFormatError),
        ],
    )
    async def test_rejected_before_any_io(self, db, shop, storage, request_kwargs, error):
        with pytest.raises(error):
            await generate_summary_report(
                db, ReportRequest(shop_id=str(shop.id), **request_kwargs), storage=storage
            )
        storage.put.assert_not_called()

    async def test_bad_shop_id(self, db, storage):
        with pytest.raises(InvalidShopIdError):
            await generate_summary_report(db, ReportRequest(shop_id="shop-1"), storage=storage)

    async def test_unknown_shop(self, db):
        from shop_ledger.services.balances import ShopNotFoundError

        with pytest.raises(ShopNotFoundError):
            await generate_daily_report(db, str(uuid4()), "2024-03-01")

    async def test_bad_day(self, db, shop):
        with pytest.raises(InvalidDateError):
            await generate_daily_report(db, str(shop.id), "yesterday")


def test_parse_report_format():
    assert parse_report_format(None) is ReportFormat.JSON
    assert parse_report_format("PDF") is ReportFormat.PDF
    assert parse_report_format(ReportFormat.EXCEL) is ReportFormat.EXCEL


def test_report_key_shape():
    key = report_key("summary", "pdf", datetime(2024, 3, 1, 8, 5, 9, tzinfo=UTC))
    assert re.fullmatch(rf"{settings.report_prefix}/summary-20240301T080509Z-[0-9a-f]{{8}}\.pdf", key)
    assert key != report_key("summary", "pdf", datetime(2024, 3, 1, 8, 5, 9, tzinfo=UTC))
