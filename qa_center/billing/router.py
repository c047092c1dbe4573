"""Billing API: rates, usage report, monthly report, per-evaluation financials."""
from datetime import datetime, date, timezone
from typing import Optional, Dict, Any
import logging

from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qa_center.auth.dependencies import require_admin
from qa_center.billing.rates import BillingRates, get_billing_rates
from qa_center.billing.usage import aggregate_usage, calculate_evaluation_financials, monthly_usage, day_bounds
from qa_center.core.database import get_db
from qa_center.models.evaluation import Evaluation
from qa_center.models.user import User


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])


class RatesResponse(BaseModel):
	costSttPrerecorded: float
	costOpenAiInput: float
	costOpenAiOutput: float
	priceSttPrerecorded: float
	priceOpenAiInput: float
	priceOpenAiOutput: float


class CostModelUpdate(BaseModel):
	costData: Optional[Dict[str, Any]] = None


def _parse_date(value: Optional[str], field: str) -> Optional[datetime]:
	if not value:
		return None
	try:
		parsed = datetime.fromisoformat(value)
	except ValueError:
		raise HTTPException(
			status_code=status.HTTP_400_BAD_REQUEST,
			detail=f"Invalid {field}: expected YYYY-MM-DD",
		)
	# Stored timestamps are naive UTC
	if parsed.tzinfo is not None:
		parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
	return parsed


@router.get("/rates", response_model=RatesResponse)
async def get_rates(
	current_user: User = Depends(require_admin),
	rates: BillingRates = Depends(get_billing_rates),
):
	"""Current cost and price rates."""
	return rates.as_dict()


@router.get("/usage")
async def get_usage(
	startDate: Optional[str] = Query(None),
	endDate: Optional[str] = Query(None),
	current_user: User = Depends(require_admin),
	rates: BillingRates = Depends(get_billing_rates),
	db: AsyncSession = Depends(get_db),
):
	"""Usage and cost report for whole days between startDate and endDate.

	Defaults to the first of the current month through today.
	"""
	today = datetime.combine(date.today(), datetime.min.time())
	start = _parse_date(startDate, "startDate") or today.replace(day=1)
	end = _parse_date(endDate, "endDate") or today
	start, end = day_bounds(start, end)
	if start > end:
		raise HTTPException(
			status_code=status.HTTP_400_BAD_REQUEST,
			detail="startDate must not be after endDate",
		)

	result = await db.execute(
		select(Evaluation)
		.where(Evaluation.created_at >= start, Evaluation.created_at <= end)
		.order_by(Evaluation.created_at)
	)
	evaluations = result.scalars().all()
	logger.info(f"Found {len(evaluations)} evaluations between {start.isoformat()} and {end.isoformat()}")

	return aggregate_usage(evaluations, rates)


@router.get("/monthly")
async def get_monthly(
	year: Optional[int] = Query(None, ge=2000, le=2100),
	current_user: User = Depends(require_admin),
	rates: BillingRates = Depends(get_billing_rates),
	db: AsyncSession = Depends(get_db),
):
	"""Month-by-month billing for a year (default: current year)."""
	target_year = year or date.today().year
	result = await db.execute(
		select(Evaluation).where(
			Evaluation.created_at >= datetime(target_year, 1, 1),
			Evaluation.created_at < datetime(target_year + 1, 1, 1),
		)
	)
	return monthly_usage(result.scalars().all(), target_year, rates)


@router.get("/evaluations/{evaluation_id}")
async def get_evaluation_financials(
	evaluation_id: int,
	current_user: User = Depends(require_admin),
	rates: BillingRates = Depends(get_billing_rates),
	db: AsyncSession = Depends(get_db),
):
	"""Cost, price and profit for a single evaluation."""
	evaluation = await db.get(Evaluation, evaluation_id)
	if not evaluation:
		raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Evaluation not found")
	return {**calculate_evaluation_financials(evaluation, rates), "costModel": evaluation.cost_model}


@router.post("/evaluations/{evaluation_id}/cost")
async def update_evaluation_cost(
	evaluation_id: int,
	payload: CostModelUpdate,
	current_user: User = Depends(require_admin),
	db: AsyncSession = Depends(get_db),
):
	"""Merge manual cost figures into an evaluation's stored cost model."""
	if not payload.costData:
		raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cost data is required")

	evaluation = await db.get(Evaluation, evaluation_id)
	if not evaluation:
		raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Evaluation not found")

	evaluation.cost_model = {
		**evaluation.cost_model,
		**payload.costData,
		"updatedAt": datetime.utcnow().isoformat(),
		"updatedBy": current_user.username or current_user.id,
	}
	await db.commit()
	logger.info(f"Cost model updated for evaluation {evaluation_id} by {current_user.username}")

	return {"message": "Cost data updated successfully", "evaluationId": evaluation.id, "costModel": evaluation.cost_model}
