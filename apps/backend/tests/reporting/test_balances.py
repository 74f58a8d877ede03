"""Opening balance, branding and settings lookups."""

from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio

from shop_ledger.config import settings
from shop_ledger.services.balances import (
    SettingsNotFoundError,
    ShopNotFoundError,
    prior_delta,
    resolve_baseline,
    resolve_branding,
    resolve_opening_balance,
)
from shop_ledger.services.normalize import parse_strict_date
from shop_ledger.services.scope import AllShops, SingleShop
from tests.factories import CustomerFactory, SettingFactory, ShopFactory, TransactionFactory


@pytest_asyncio.fixture
async def customer(db, shop):
    return await CustomerFactory.create_async(db, shop_id=shop.id, name="Ali")


async def _add(db, shop, customer, amount, when, payable=False):
    return await TransactionFactory.create_async(
        db,
        shop_id=shop.id,
        customer_id=customer.id,
        amount=Decimal(amount),
        payable_entry=payable,
        date=when,
    )


class TestOpeningBalance:
    async def test_no_window_uses_baseline(self, db, shop, customer, day):
        await _add(db, shop, customer, "500", day(1))
        opening = await resolve_opening_balance(db, SingleShop(shop.id))
        assert opening == Decimal("1000")

    async def test_window_without_history_uses_baseline(self, db, shop, customer, day):
        await _add(db, shop, customer, "500", day(10))
        opening = await resolve_opening_balance(db, SingleShop(shop.id), parse_strict_date("2024-03-05"))
        assert opening == Decimal("1000")

    async def test_prior_transactions_roll_forward(self, db, shop, customer, day):
        await _add(db, shop, customer, "500", day(1))
        await _add(db, shop, customer, "200", day(2), payable=True)
        await _add(db, shop, customer, "75", day(3))

        opening = await resolve_opening_balance(db, SingleShop(shop.id), parse_strict_date("2024-03-03"))
        assert opening == Decimal("1300")

    async def test_window_start_is_exclusive(self, db, shop, customer):
        start = parse_strict_date("2024-03-03")
        await _add(db, shop, customer, "50", start)

        delta, count = await prior_delta(db, SingleShop(shop.id), start)
        assert (delta, count) == (Decimal("0"), 0)

    async def test_customer_filter(self, db, shop, customer, day):
        other = await CustomerFactory.create_async(db, shop_id=shop.id, name="Bilal")
        await _add(db, shop, customer, "500", day(1))
        await _add(db, shop, other, "300", day(1), payable=True)

        start = parse_strict_date("2024-03-02")
        assert await resolve_opening_balance(db, SingleShop(shop.id), start) == Decimal("1200")
        assert await resolve_opening_balance(db, SingleShop(shop.id), start, customer.id) == Decimal("1500")
        assert await resolve_opening_balance(db, SingleShop(shop.id), start, other.id) == Decimal("700")

    async def test_other_shops_do_not_leak(self, db, shop, customer, day):
        neighbour = await ShopFactory.create_async(db)
        await SettingFactory.create_async(db, shop_id=neighbour.id, opening_balance=Decimal("50"))
        their_customer = await CustomerFactory.create_async(db, shop_id=neighbour.id)
        await _add(db, neighbour, their_customer, "900", day(1))

        opening = await resolve_opening_balance(db, SingleShop(shop.id), parse_strict_date("2024-03-05"))
        assert opening == Decimal("1000")

    async def test_unset_baseline_is_zero(self, db, day):
        bare = await ShopFactory.create_async(db)
        await SettingFactory.create_async(db, shop_id=bare.id, opening_balance=None)
        customer = await CustomerFactory.create_async(db, shop_id=bare.id)
        await _add(db, bare, customer, "40", day(1), payable=True)

        opening = await resolve_opening_balance(db, SingleShop(bare.id), parse_strict_date("2024-03-02"))
        assert opening == Decimal("-40")


class TestAllShops:
    async def test_baseline_sums_every_shop(self, db):
        first = await ShopFactory.create_async(db)
        second = await ShopFactory.create_async(db)
        await SettingFactory.create_async(db, shop_id=first.id, opening_balance=Decimal("100"))
        await SettingFactory.create_async(db, shop_id=second.id, opening_balance=Decimal("-50"))

        assert await resolve_baseline(db, AllShops()) == Decimal("50")

    async def test_prior_delta_spans_shops(self, db, shop, customer, day):
        neighbour = await ShopFactory.create_async(db)
        await SettingFactory.create_async(db, shop_id=neighbour.id, opening_balance=Decimal("0"))
        their_customer = await CustomerFactory.create_async(db, shop_id=neighbour.id)
        await _add(db, shop, customer, "100", day(1))
        await _add(db, neighbour, their_customer, "30", day(1), payable=True)

        opening = await resolve_opening_balance(db, AllShops(), parse_strict_date("2024-03-02"))
        assert opening == Decimal("1070")

    async def test_branding_uses_defaults(self, db):
        branding = await resolve_branding(db, AllShops())
        assert branding.site_name == settings.default_site_name
        assert branding.currency == settings.default_currency
        assert branding.logo_url is None
        assert branding.all_shops


class TestLookups:
    async def test_branding_for_shop(self, db, shop):
        branding = await resolve_branding(db, SingleShop(shop.id))
        assert branding.site_name == "Main Street Traders"
        assert branding.currency == "PKR"
        assert not branding.all_shops

    async def test_unknown_shop(self, db):
        with pytest.raises(ShopNotFoundError):
            await resolve_opening_balance(db, SingleShop(uuid4()))

    async def test_shop_without_settings(self, db):
        bare = await ShopFactory.create_async(db)
        with pytest.raises(SettingsNotFoundError):
            await resolve_branding(db, SingleShop(bare.id))
