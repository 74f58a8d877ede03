"""Dashboard summary."""

from decimal import Decimal

from shop_ledger.services.aggregation import NEGATIVE_BALANCE_ALERT, NO_TRANSACTIONS_ALERT
from shop_ledger.services.dashboard import get_dashboard_summary
from shop_ledger.services.normalize import parse_date_range
from shop_ledger.services.scope import SingleShop
from tests.factories import CustomerFactory, TransactionFactory


async def _seed(db, shop, day, count):
    customer = await CustomerFactory.create_async(db, shop_id=shop.id)
    for index in range(count):
        await TransactionFactory.create_async(
            db,
            shop_id=shop.id,
            customer_id=customer.id,
            amount=Decimal("10"),
            payable_entry=index % 2 == 1,
            date=day(1 + index),
        )


async def test_recent_transactions_are_capped_and_newest_first(db, shop, day):
    await _seed(db, shop, day, 12)
    summary = await get_dashboard_summary(db, SingleShop(shop.id))

    recent = summary["recent_transactions"]
    assert len(recent) == 10
    assert recent[0].formatted_date == "2024-03-12"
    assert recent[-1].formatted_date == "2024-03-03"
    assert summary["metadata"]["transaction_count"] == 12
    assert summary["metadata"]["receivable_count"] == 6
    assert summary["metadata"]["payable_count"] == 6
    assert summary["balance"] == Decimal("1000.00")


async def test_new_shop_has_no_alerts(db, shop):
    summary = await get_dashboard_summary(db, SingleShop(shop.id))
    assert summary["alerts"] == []
    assert summary["recent_transactions"] == []
    assert summary["opening_balance"] == Decimal("1000.00")


async def test_empty_filtered_period_is_flagged(db, shop, day):
    await _seed(db, shop, day, 2)
    window = parse_date_range("2024-03-20", "2024-03-25")
    summary = await get_dashboard_summary(db, SingleShop(shop.id), window)

    assert summary["alerts"] == [NO_TRANSACTIONS_ALERT]
    assert summary["opening_balance"] == Decimal("1000.00")
    assert summary["metadata"]["date_range"] == {"start_date": "2024-03-20", "end_date": "2024-03-25"}


async def test_negative_balance_alert(db, shop, day):
    customer = await CustomerFactory.create_async(db, shop_id=shop.id)
    await TransactionFactory.create_async(
        db, shop_id=shop.id, customer_id=customer.id, amount=Decimal("1500"), payable_entry=True, date=day(3)
    )
    summary = await get_dashboard_summary(db, SingleShop(shop.id))
    assert summary["balance"] == Decimal("-500.00")
    assert summary["alerts"] == [NEGATIVE_BALANCE_ALERT]
