import pytest
from datetime import datetime
from decimal import Decimal

from qa_center.billing.rates import BillingRates, get_billing_rates
from qa_center.billing.usage import aggregate_usage, calculate_evaluation_financials, monthly_usage
from qa_center.main import app as fastapi_app
from qa_center.models.evaluation import Evaluation


RATES = BillingRates(
    cost_stt_prerecorded=Decimal("0.006"),
    cost_openai_input=Decimal("0.01"),
    cost_openai_output=Decimal("0.02"),
    price_stt_prerecorded=Decimal("0.012"),
    price_openai_input=Decimal("0.02"),
    price_openai_output=Decimal("0.04"),
)


def make_evaluation(**kwargs) -> Evaluation:
    defaults = dict(
        qa_form_id="f1",
        qa_form_name="Form",
        agent_id="1001",
        agent_name="Alex",
        queue_id="q1",
        queue_name="Support",
        duration=0,
        prompt_tokens=0,
        completion_tokens=0,
        created_at=datetime(2026, 3, 10, 12, 0),
    )
    defaults.update(kwargs)
    return Evaluation(**defaults)


def test_breakdown_totals_are_exact_sums():
    evaluations = [
        make_evaluation(prompt_tokens=123, created_at=datetime(2026, 3, 10, 9, 0)),
        make_evaluation(prompt_tokens=456, created_at=datetime(2026, 3, 11, 9, 0)),
    ]
    report = aggregate_usage(evaluations, RATES)

    assert report["costBreakdown"]["openAiInput"] == 5.79
    assert report["costBreakdown"]["total"] == 5.79
    assert [day["totalCost"] for day in report["dailyUsage"]] == [1.23, 4.56]
    assert report["priceBreakdown"]["total"] == 11.58
    assert report["evaluationCount"] == 2
    assert report["totalTokens"] == 579


def test_daily_agent_and_queue_rollups_match_totals():
    evaluations = [
        make_evaluation(duration=90, prompt_tokens=1000, completion_tokens=250),
        make_evaluation(duration=30, prompt_tokens=333, completion_tokens=77, agent_id="1002", agent_name="Sam"),
        make_evaluation(
            duration=61,
            prompt_tokens=10,
            completion_tokens=3,
            agent_id=None,
            queue_id=None,
            created_at=datetime(2026, 3, 12, 8, 0),
        ),
    ]
    report = aggregate_usage(evaluations, RATES)

    for key in ("totalCost", "totalPrice", "totalTokens", "totalDuration", "evaluationCount"):
        daily_sum = sum(Decimal(str(row[key])) for row in report["dailyUsage"])
        agent_sum = sum(Decimal(str(row[key])) for row in report["byAgent"])
        queue_sum = sum(Decimal(str(row[key])) for row in report["byQueue"])
        assert daily_sum == agent_sum == queue_sum

    daily_cost = sum(Decimal(str(row["totalCost"])) for row in report["dailyUsage"])
    assert daily_cost == Decimal(str(report["costBreakdown"]["total"]))
    assert report["totalDuration"] == 181

    unknown = [row for row in report["byAgent"] if row["agentId"] == "unknown"]
    assert unknown[0]["name"] == "Alex"
    assert [row["date"] for row in report["dailyUsage"]] == ["2026-03-10", "2026-03-12"]
    assert report["rates"]["costOpenAiInput"] == 0.01


def test_agents_sorted_by_cost_descending():
    evaluations = [
        make_evaluation(prompt_tokens=10, agent_id="cheap"),
        make_evaluation(prompt_tokens=1000, agent_id="expensive"),
    ]
    report = aggregate_usage(evaluations, RATES)
    assert [row["agentId"] for row in report["byAgent"]] == ["expensive", "cheap"]


def test_total_tokens_fall_back_to_prompt_plus_completion():
    report = aggregate_usage([make_evaluation(prompt_tokens=5, completion_tokens=7, total_tokens=None)], RATES)
    assert report["totalTokens"] == 12


def test_evaluation_financials():
    evaluation = make_evaluation(duration=120, prompt_tokens=100, completion_tokens=50)
    evaluation.id = 9
    financials = calculate_evaluation_financials(evaluation, RATES)

    assert financials["callDuration"] == {"seconds": 120, "minutes": 2.0}
    assert financials["cost"] == {"stt": 0.012, "openai": 2.0, "total": 2.012}
    assert financials["price"]["total"] == 4.024
    assert financials["profit"]["amount"] == 2.012
    assert financials["profit"]["margin"] == 100.0


def test_monthly_usage_has_twelve_rows():
    rows = monthly_usage(
        [make_evaluation(prompt_tokens=100), make_evaluation(created_at=datetime(2025, 3, 1))],
        2026,
        RATES,
    )
    assert len(rows) == 12
    march = rows[2]
    assert march["month"] == "March"
    assert march["evaluationCount"] == 1
    assert march["openai"]["cost"] == 1.0
    assert rows[0]["evaluationCount"] == 0


@pytest.mark.asyncio
async def test_usage_endpoint(client, admin_header, db_session):
    db_session.add_all([
        make_evaluation(prompt_tokens=123, created_at=datetime(2026, 3, 10, 23, 30)),
        make_evaluation(prompt_tokens=456, created_at=datetime(2026, 3, 11, 0, 15)),
        make_evaluation(prompt_tokens=999, created_at=datetime(2026, 4, 1, 0, 0)),
    ])
    await db_session.commit()
    fastapi_app.dependency_overrides[get_billing_rates] = lambda: RATES

    resp = await client.get(
        "/api/billing/usage", params={"startDate": "2026-03-10", "endDate": "2026-03-31"}, headers=admin_header
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["evaluationCount"] == 2
    assert data["costBreakdown"]["total"] == 5.79


@pytest.mark.asyncio
async def test_usage_endpoint_accepts_timezone_aware_dates(client, admin_header, db_session):
    db_session.add_all([
        make_evaluation(prompt_tokens=123, created_at=datetime(2026, 3, 10, 23, 30)),
        make_evaluation(prompt_tokens=456, created_at=datetime(2026, 3, 11, 0, 15)),
    ])
    await db_session.commit()
    fastapi_app.dependency_overrides[get_billing_rates] = lambda: RATES

    # 01:00 at +02:00 is still March 10 in UTC
    resp = await client.get(
        "/api/billing/usage",
        params={"startDate": "2026-03-11T01:00:00+02:00", "endDate": "2026-03-31T00:00:00+00:00"},
        headers=admin_header,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["evaluationCount"] == 2
    daily_total = sum(day["totalCost"] for day in data["dailyUsage"])
    assert round(daily_total, 6) == data["costBreakdown"]["total"] == 5.79

    resp = await client.get(
        "/api/billing/usage", params={"startDate": "2026-03-10T00:00:00+02:00"}, headers=admin_header
    )
    assert resp.status_code == 200
    assert resp.json()["evaluationCount"] == 2


@pytest.mark.asyncio
async def test_usage_endpoint_rejects_bad_dates(client, admin_header):
    resp = await client.get("/api/billing/usage", params={"startDate": "March"}, headers=admin_header)
    assert resp.status_code == 400

    resp = await client.get(
        "/api/billing/usage", params={"startDate": "2026-03-10", "endDate": "2026-03-01"}, headers=admin_header
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_rates_endpoint_uses_configured_rates(client, admin_header):
    resp = await client.get("/api/billing/rates", headers=admin_header)
    assert resp.status_code == 200
    assert resp.json() == BillingRates.from_settings().as_dict()


@pytest.mark.asyncio
async def test_evaluation_financials_endpoint(client, admin_header, db_session):
    evaluation = make_evaluation(duration=60, prompt_tokens=10)
    db_session.add(evaluation)
    await db_session.commit()
    fastapi_app.dependency_overrides[get_billing_rates] = lambda: RATES

    resp = await client.get(f"/api/billing/evaluations/{evaluation.id}", headers=admin_header)
    assert resp.status_code == 200
    assert resp.json()["cost"]["total"] == 0.106

    missing = await client.get("/api/billing/evaluations/999", headers=admin_header)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_update_evaluation_cost_merges_and_persists(client, admin_header, agent_header, db_session):
    evaluation = make_evaluation(duration=60, prompt_tokens=10)
    db_session.add(evaluation)
    await db_session.commit()
    url = f"/api/billing/evaluations/{evaluation.id}/cost"

    resp = await client.post(url, json={"costData": {"sttCost": 0.5}}, headers=admin_header)
    assert resp.status_code == 200
    assert resp.json()["costModel"]["sttCost"] == 0.5
    assert resp.json()["costModel"]["updatedBy"] == "admin"

    resp = await client.post(url, json={"costData": {"openAiCost": 0.25}}, headers=admin_header)
    model = resp.json()["costModel"]
    assert (model["sttCost"], model["openAiCost"]) == (0.5, 0.25)

    fetched = await client.get(f"/api/billing/evaluations/{evaluation.id}", headers=admin_header)
    assert fetched.json()["costModel"]["openAiCost"] == 0.25

    assert (await client.post(url, json={}, headers=admin_header)).status_code == 400
    assert (await client.post(url, json={"costData": {"x": 1}}, headers=agent_header)).status_code == 403
    missing = await client.post("/api/billing/evaluations/999/cost", json={"costData": {"x": 1}}, headers=admin_header)
    assert missing.status_code == 404
