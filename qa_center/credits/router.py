"""Credit ledger router (admin only)."""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from qa_center.auth.dependencies import require_admin
from qa_center.core.database import get_db
from qa_center.credits import service
from qa_center.credits.schemas import (
    CreditAddRequest,
    CreditAddResponse,
    ThresholdUpdateRequest,
    BalanceResponse,
    TransactionListResponse,
    CreditStatsResponse,
)
from qa_center.models.user import User


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/credits", tags=["Credits"])


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Get the current credit balance and low-balance flag."""
    return await service.get_balance(db)


@router.post("/add", response_model=CreditAddResponse)
async def add_credits(
    payload: CreditAddRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Add credits to the balance.

    Raises:
        HTTPException: 400 if amount is not greater than zero
    """
    description = payload.description or f"Added by {current_user.username or current_user.id}"
    try:
        result = await service.add_credits(db, payload.amount, description)
    except service.CreditError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {**result, "amount_added": result["transaction"].amount}


@router.put("/threshold", response_model=BalanceResponse)
async def update_threshold(
    payload: ThresholdUpdateRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Update the low-balance threshold percentage."""
    try:
        return await service.update_threshold(db, payload.threshold)
    except service.CreditError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Get the ledger, newest first."""
    return await service.list_transactions(db, page=page, limit=limit)


@router.get("/stats", response_model=CreditStatsResponse)
async def get_stats(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Get credit usage statistics."""
    return await service.usage_stats(db)
