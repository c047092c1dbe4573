"""Usage aggregation over evaluations.

Each evaluation's cost and price are rounded once, then every rollup is a plain
sum of those rounded figures. Daily, per-agent and per-queue rows therefore add
up exactly to the totals.
"""
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Dict, Any, List
from qa_center.billing.rates import BillingRates
from qa_center.models.evaluation import Evaluation


MONEY_QUANTUM = Decimal("0.000001")
SECONDS_PER_MINUTE = Decimal(60)

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def _money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def _round(value: Decimal, places: int) -> float:
    return float(value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


@dataclass
class EvaluationCharges:
    """Cost and price of one evaluation, split by service."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    duration: int
    stt_cost: Decimal
    input_cost: Decimal
    output_cost: Decimal
    stt_price: Decimal
    input_price: Decimal
    output_price: Decimal

    @property
    def total_cost(self) -> Decimal:
        return self.stt_cost + self.input_cost + self.output_cost

    @property
    def total_price(self) -> Decimal:
        return self.stt_price + self.input_price + self.output_price


def charge_evaluation(evaluation: Evaluation, rates: BillingRates) -> EvaluationCharges:
    """Apply the current rates to one evaluation's usage."""
    prompt_tokens = evaluation.prompt_tokens or 0
    completion_tokens = evaluation.completion_tokens or 0
    total_tokens = evaluation.total_tokens or prompt_tokens + completion_tokens
    duration = evaluation.duration or 0
    minutes = Decimal(duration) / SECONDS_PER_MINUTE

    return EvaluationCharges(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=total_tokens,
        duration=duration,
        stt_cost=_money(minutes * rates.cost_stt_prerecorded),
        input_cost=_money(prompt_tokens * rates.cost_openai_input),
        output_cost=_money(completion_tokens * rates.cost_openai_output),
        stt_price=_money(minutes * rates.price_stt_prerecorded),
        input_price=_money(prompt_tokens * rates.price_openai_input),
        output_price=_money(completion_tokens * rates.price_openai_output),
    )


def _empty_bucket(**identity) -> Dict[str, Any]:
    return {
        **identity,
        "evaluationCount": 0,
        "totalTokens": 0,
        "totalDuration": 0,
        "totalCost": Decimal("0"),
        "totalPrice": Decimal("0"),
    }


def _add_to_bucket(bucket: Dict[str, Any], charges: EvaluationCharges) -> None:
    bucket["evaluationCount"] += 1
    bucket["totalTokens"] += charges.total_tokens
    bucket["totalDuration"] += charges.duration
    bucket["totalCost"] += charges.total_cost
    bucket["totalPrice"] += charges.total_price


def _bucket_out(bucket: Dict[str, Any]) -> Dict[str, Any]:
    return {**bucket, "totalCost": float(bucket["totalCost"]), "totalPrice": float(bucket["totalPrice"])}


def aggregate_usage(evaluations: Iterable[Evaluation], rates: BillingRates) -> Dict[str, Any]:
    """
    Roll evaluations up into totals, per-service breakdowns and per-agent,
    per-queue and per-day series.

    Args:
        evaluations: Evaluations in the reporting window
        rates: Rates in effect now; historical rates are not re-derived

    Returns:
        Usage report with camel-cased keys
    """
    totals = {"evaluationCount": 0, "promptTokens": 0, "completionTokens": 0, "totalTokens": 0, "totalDuration": 0}
    cost = {"stt": Decimal("0"), "openAiInput": Decimal("0"), "openAiOutput": Decimal("0")}
    price = {"stt": Decimal("0"), "openAiInput": Decimal("0"), "openAiOutput": Decimal("0")}
    by_agent: Dict[str, Dict[str, Any]] = OrderedDict()
    by_queue: Dict[str, Dict[str, Any]] = OrderedDict()
    daily: Dict[str, Dict[str, Any]] = {}

    for evaluation in evaluations:
        charges = charge_evaluation(evaluation, rates)

        totals["evaluationCount"] += 1
        totals["promptTokens"] += charges.prompt_tokens
        totals["completionTokens"] += charges.completion_tokens
        totals["totalTokens"] += charges.total_tokens
        totals["totalDuration"] += charges.duration

        cost["stt"] += charges.stt_cost
        cost["openAiInput"] += charges.input_cost
        cost["openAiOutput"] += charges.output_cost
        price["stt"] += charges.stt_price
        price["openAiInput"] += charges.input_price
        price["openAiOutput"] += charges.output_price

        agent_id = evaluation.agent_id or "unknown"
        if agent_id not in by_agent:
            by_agent[agent_id] = _empty_bucket(agentId=agent_id, name=evaluation.agent_name or "Unknown Agent")
        _add_to_bucket(by_agent[agent_id], charges)

        queue_id = evaluation.queue_id or "unknown"
        if queue_id not in by_queue:
            by_queue[queue_id] = _empty_bucket(queueId=queue_id, name=evaluation.queue_name or "Unknown Queue")
        _add_to_bucket(by_queue[queue_id], charges)

        day = evaluation.created_at.date().isoformat()
        if day not in daily:
            daily[day] = _empty_bucket(date=day)
        _add_to_bucket(daily[day], charges)

    cost_total = sum(cost.values(), Decimal("0"))
    price_total = sum(price.values(), Decimal("0"))

    return {
        **totals,
        "costBreakdown": {**{k: float(v) for k, v in cost.items()}, "total": float(cost_total)},
        "priceBreakdown": {**{k: float(v) for k, v in price.items()}, "total": float(price_total)},
        "byAgent": [_bucket_out(b) for b in sorted(by_agent.values(), key=lambda b: b["totalCost"], reverse=True)],
        "byQueue": [_bucket_out(b) for b in sorted(by_queue.values(), key=lambda b: b["totalCost"], reverse=True)],
        "dailyUsage": [_bucket_out(daily[day]) for day in sorted(daily)],
        "rates": rates.as_dict(),
    }


def calculate_evaluation_financials(evaluation: Evaluation, rates: BillingRates) -> Dict[str, Any]:
    """Per-evaluation cost, price and profit breakdown."""
    charges = charge_evaluation(evaluation, rates)
    openai_cost = charges.input_cost + charges.output_cost
    openai_price = charges.input_price + charges.output_price
    profit = charges.total_price - charges.total_cost
    margin = (profit / charges.total_cost * 100) if charges.total_cost > 0 else Decimal("0")

    return {
        "evaluationId": evaluation.id,
        "date": evaluation.created_at.isoformat() if evaluation.created_at else None,
        "agent": evaluation.agent_name or "Unknown",
        "interactionId": evaluation.interaction_id,
        "callDuration": {
            "seconds": charges.duration,
            "minutes": float(Decimal(charges.duration) / SECONDS_PER_MINUTE),
        },
        "tokens": {
            "input": charges.prompt_tokens,
            "output": charges.completion_tokens,
            "total": charges.total_tokens,
        },
        "cost": {
            "stt": _round(charges.stt_cost, 4),
            "openai": _round(openai_cost, 4),
            "total": _round(charges.total_cost, 4),
        },
        "price": {
            "stt": _round(charges.stt_price, 4),
            "openai": _round(openai_price, 4),
            "total": _round(charges.total_price, 4),
        },
        "profit": {"amount": _round(profit, 4), "margin": _round(margin, 2)},
        "rates": rates.as_dict(),
    }


def monthly_usage(evaluations: Iterable[Evaluation], year: int, rates: BillingRates) -> List[Dict[str, Any]]:
    """Twelve month rows for ``year`` with cost, price, profit and margin."""
    months = {
        number: {"count": 0, "input": 0, "output": 0, "tokens": 0, "duration": 0}
        for number in range(1, 13)
    }
    for evaluation in evaluations:
        if evaluation.created_at.year != year:
            continue
        month = months[evaluation.created_at.month]
        prompt_tokens = evaluation.prompt_tokens or 0
        completion_tokens = evaluation.completion_tokens or 0
        month["count"] += 1
        month["input"] += prompt_tokens
        month["output"] += completion_tokens
        month["tokens"] += evaluation.total_tokens or prompt_tokens + completion_tokens
        month["duration"] += evaluation.duration or 0

    rows = []
    for number, month in months.items():
        minutes = Decimal(month["duration"]) / SECONDS_PER_MINUTE
        stt_cost = minutes * rates.cost_stt_prerecorded
        stt_price = minutes * rates.price_stt_prerecorded
        openai_cost = month["input"] * rates.cost_openai_input + month["output"] * rates.cost_openai_output
        openai_price = month["input"] * rates.price_openai_input + month["output"] * rates.price_openai_output
        total_cost = stt_cost + openai_cost
        total_price = stt_price + openai_price
        profit = total_price - total_cost
        margin = (profit / total_cost * 100) if total_cost > 0 else Decimal("0")

        rows.append({
            "month": MONTH_NAMES[number - 1],
            "monthNum": number,
            "year": year,
            "evaluationCount": month["count"],
            "stt": {
                "minutes": _round(minutes, 2),
                "cost": _round(stt_cost, 4),
                "price": _round(stt_price, 4),
            },
            "openai": {
                "inputTokens": month["input"],
                "outputTokens": month["output"],
                "totalTokens": month["tokens"],
                "cost": _round(openai_cost, 4),
                "price": _round(openai_price, 4),
            },
            "totalCost": _round(total_cost, 4),
            "totalPrice": _round(total_price, 4),
            "profit": _round(profit, 4),
            "profitMargin": _round(margin, 2),
        })
    return rows


def day_bounds(start: datetime, end: datetime) -> tuple:
    """Expand a date range to whole days: start at 00:00, end at 23:59:59.999999."""
    return (
        start.replace(hour=0, minute=0, second=0, microsecond=0),
        end.replace(hour=23, minute=59, second=59, microsecond=999999),
    )
