"""Transaction, opening balance, dashboard and health endpoints."""

from decimal import Decimal
from uuid import uuid4

import pytest_asyncio

from tests.factories import CustomerFactory, TransactionFactory


@pytest_asyncio.fixture
async def customer(db, shop):
    customer = await CustomerFactory.create_async(db, shop_id=shop.id, name="Ali")
    await db.commit()
    return customer


def _receivable_payload(customer_id, amount="500"):
    return {
        "customerId": str(customer_id),
        "transactionType": "receivable",
        "totalAmount": amount,
        "receivable": amount,
        "category": "Sales",
        "date": "2024-03-01T10:00:00Z",
    }


class TestTransactions:
    async def test_create(self, client, shop, customer):
        response = await client.post("/transactions", json=_receivable_payload(customer.id))

        assert response.status_code == 201
        body = response.json()
        assert body["transaction"]["receivable"] == 500.0
        assert body["transaction"]["payable"] == 0.0
        assert body["transaction"]["shopId"] == str(shop.id)
        assert body["customer"]["balance"] == 500.0

    async def test_create_by_name(self, client, shop):
        payload = {
            "customerName": "Walk-in",
            "transactionType": "payable",
            "totalAmount": "40",
            "payable": "40",
        }
        response = await client.post("/transactions", json=payload)

        assert response.status_code == 201
        assert response.json()["customer"]["name"] == "Walk-in"
        assert response.json()["customer"]["balance"] == -40.0

    async def test_create_validation(self, client, shop, customer):
        payload = _receivable_payload(customer.id)
        del payload["receivable"]
        response = await client.post("/transactions", json=payload)
        assert response.status_code == 400

        response = await client.post("/transactions", json={**_receivable_payload(customer.id), "totalAmount": "-1"})
        assert response.status_code == 422

    async def test_unknown_customer(self, client, shop):
        response = await client.post("/transactions", json=_receivable_payload(uuid4()))
        assert response.status_code == 404

    async def test_update_and_delete(self, client, db, shop, customer):
        created = await client.post("/transactions", json=_receivable_payload(customer.id))
        transaction_id = created.json()["transaction"]["id"]

        response = await client.put(f"/transactions/{transaction_id}", json={"receivable": "125.5"})
        assert response.status_code == 200
        assert response.json()["receivable"] == 125.5
        await db.refresh(customer)
        assert customer.balance == Decimal("125.50")

        response = await client.delete(f"/transactions/{transaction_id}")
        assert response.status_code == 204
        await db.refresh(customer)
        assert customer.balance == Decimal("0")

        response = await client.delete(f"/transactions/{transaction_id}")
        assert response.status_code == 404

    async def test_writes_to_other_shop_are_forbidden(self, client, shop, customer):
        response = await client.post(
            "/transactions", params={"shopId": str(uuid4())}, json=_receivable_payload(customer.id)
        )
        assert response.status_code == 403


class TestOpeningBalance:
    async def test_write_once(self, client, shop):
        response = await client.put("/settings/opening-balance", json={"openingBalance": "2500.5"})
        assert response.status_code == 200
        assert response.json()["openingBalance"] == 2500.5
        assert response.json()["openingBalanceSet"] is True

        response = await client.put("/settings/opening-balance", json={"openingBalance": "1"})
        assert response.status_code == 409

    async def test_superadmin_needs_a_shop(self, admin_client, shop):
        response = await admin_client.put("/settings/opening-balance", json={"openingBalance": "1"})
        assert response.status_code == 400

        response = await admin_client.put(
            "/settings/opening-balance", json={"shopId": str(shop.id), "openingBalance": "1"}
        )
        assert response.status_code == 200


class TestDashboard:
    async def test_summary(self, client, db, shop, customer, day):
        for number in range(1, 4):
            await TransactionFactory.create_async(
                db, shop_id=shop.id, customer_id=customer.id, amount=Decimal("100"), date=day(number)
            )
        await db.commit()

        response = await client.get("/dashboard")
        assert response.status_code == 200
        body = response.json()
        assert body["balance"] == 1300.0
        assert body["alerts"] == []
        assert [line["formattedDate"] for line in body["recentTransactions"]] == [
            "2024-03-03",
            "2024-03-02",
            "2024-03-01",
        ]
        assert body["metadata"]["receivableCount"] == 3

    async def test_bad_range(self, client, shop):
        response = await client.get("/dashboard", params={"startDate": "2024-13-01"})
        assert response.status_code == 400


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["checks"] == {"database": True}


async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
