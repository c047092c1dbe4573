import pytest
from decimal import Decimal
from sqlalchemy import select, func

from qa_center.credits import service
from qa_center.models.credit import CreditTransaction, TransactionType


@pytest.mark.asyncio
async def test_balance_starts_at_zero_and_is_low(client, admin_header):
    resp = await client.get("/api/credits/balance", headers=admin_header)
    assert resp.status_code == 200
    data = resp.json()
    assert data["current_balance"] == 0
    assert data["low_balance_threshold"] == 20
    assert data["is_low"] is True


@pytest.mark.asyncio
async def test_add_credits_records_transaction(client, admin_header):
    resp = await client.post("/api/credits/add", json={"amount": 100}, headers=admin_header)
    assert resp.status_code == 200
    data = resp.json()
    assert data["current_balance"] == 100
    assert data["amount_added"] == 100
    assert data["is_low"] is False
    assert data["transaction"]["transaction_type"] == "addition"
    assert data["transaction"]["balance_after"] == 100
    assert data["transaction"]["description"] == "Added by admin"

    balance = await client.get("/api/credits/balance", headers=admin_header)
    assert balance.json()["current_balance"] == 100


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5])
async def test_add_credits_rejects_non_positive_amount(client, admin_header, db_session, amount):
    resp = await client.post("/api/credits/add", json={"amount": amount}, headers=admin_header)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid amount. Must be greater than 0."

    count = (await db_session.execute(select(func.count(CreditTransaction.id)))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("raw_amount", ["Infinity", "-Infinity", "NaN"])
async def test_add_credits_rejects_non_finite_amount(client, admin_header, db_session, raw_amount):
    resp = await client.post(
        "/api/credits/add",
        content=f'{{"amount": {raw_amount}}}',
        headers={**admin_header, "Content-Type": "application/json"},
    )
    assert resp.status_code == 422

    count = (await db_session.execute(select(func.count(CreditTransaction.id)))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [1e30, 100000000])
async def test_add_credits_rejects_amount_beyond_ledger_range(client, admin_header, db_session, amount):
    resp = await client.post("/api/credits/add", json={"amount": amount}, headers=admin_header)
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("Invalid amount")

    count = (await db_session.execute(select(func.count(CreditTransaction.id)))).scalar_one()
    assert count == 0


def test_to_amount_rejects_non_finite_values():
    with pytest.raises(service.CreditError):
        service.to_amount(float("inf"))
    with pytest.raises(service.CreditError):
        service.to_amount("not a number")
    assert service.to_amount("12.34567") == Decimal("12.3457")


@pytest.mark.asyncio
async def test_threshold_update_and_validation(client, admin_header):
    resp = await client.put("/api/credits/threshold", json={"threshold": 50}, headers=admin_header)
    assert resp.status_code == 200
    assert resp.json()["low_balance_threshold"] == 50

    resp = await client.put("/api/credits/threshold", json={"threshold": 101}, headers=admin_header)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid threshold. Must be between 0 and 100."


@pytest.mark.asyncio
async def test_transactions_paginated_newest_first(client, admin_header):
    for amount in (10, 20, 30):
        resp = await client.post("/api/credits/add", json={"amount": amount}, headers=admin_header)
        assert resp.status_code == 200

    resp = await client.get("/api/credits/transactions?page=1&limit=2", headers=admin_header)
    assert resp.status_code == 200
    data = resp.json()
    assert [tx["amount"] for tx in data["transactions"]] == [30, 20]
    assert data["pagination"] == {"total": 3, "page": 1, "limit": 2, "pages": 2}

    page_two = await client.get("/api/credits/transactions?page=2&limit=2", headers=admin_header)
    assert [tx["amount"] for tx in page_two.json()["transactions"]] == [10]


@pytest.mark.asyncio
async def test_stats(client, admin_header, db_session):
    await client.post("/api/credits/add", json={"amount": 200}, headers=admin_header)
    await service.deduct_credits(db_session, Decimal("50"), evaluation_id=7)

    resp = await client.get("/api/credits/stats", headers=admin_header)
    data = resp.json()
    assert data["total_added"] == 200
    assert data["total_used"] == 50
    assert data["current_balance"] == 150
    assert data["usage_percent"] == 25


@pytest.mark.asyncio
async def test_credit_endpoints_require_admin(client, agent_header):
    resp = await client.get("/api/credits/balance", headers=agent_header)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_ledger_replays_to_stored_balances(db_session):
    await service.add_credits(db_session, 100)
    await service.add_credits(db_session, 50)
    result = await service.deduct_credits(db_session, 20, evaluation_id=1)

    assert result["current_balance"] == Decimal("130")
    transactions = (
        await db_session.execute(select(CreditTransaction).order_by(CreditTransaction.id))
    ).scalars().all()
    assert [tx.balance_after for tx in transactions] == [Decimal("100"), Decimal("150"), Decimal("130")]
    assert transactions[-1].transaction_type == TransactionType.DEDUCTION
    assert service.replay_transactions(transactions) is None


@pytest.mark.asyncio
async def test_replay_detects_tampered_entry(db_session):
    await service.add_credits(db_session, 100)
    await service.add_credits(db_session, 50)
    transactions = (
        await db_session.execute(select(CreditTransaction).order_by(CreditTransaction.id))
    ).scalars().all()
    transactions[1].balance_after = Decimal("149")

    assert service.replay_transactions(transactions) is transactions[1]


@pytest.mark.asyncio
async def test_deduction_may_overdraw(db_session):
    await service.add_credits(db_session, 5)
    result = await service.deduct_credits(db_session, 8, evaluation_id=3)
    assert result["current_balance"] == Decimal("-3")
    assert result["is_low"] is True


@pytest.mark.parametrize(
    "balance, threshold, added, expected",
    [
        (Decimal("0"), 20, Decimal("0"), True),
        (Decimal("-1"), 0, Decimal("100"), True),
        (Decimal("20"), 20, Decimal("100"), True),
        (Decimal("21"), 20, Decimal("100"), False),
        (Decimal("5"), 0, Decimal("100"), False),
        (Decimal("5"), 20, Decimal("0"), False),
    ],
)
def test_compute_is_low(balance, threshold, added, expected):
    assert service.compute_is_low(balance, threshold, added) is expected
