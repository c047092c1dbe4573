"""Pydantic schemas for the credit ledger."""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field
from qa_center.models.credit import TransactionType


class CreditAddRequest(BaseModel):
    """Add credits. Amount is checked by the service so that a bad value is a 400."""
    amount: float = Field(..., allow_inf_nan=False)
    description: Optional[str] = Field(None, max_length=500)


class ThresholdUpdateRequest(BaseModel):
    threshold: int


class BalanceResponse(BaseModel):
    """Current credit balance."""
    id: Optional[int] = None
    current_balance: float
    low_balance_threshold: int
    is_low: bool
    last_updated: Optional[datetime] = None


class TransactionResponse(BaseModel):
    """Ledger entry."""
    id: int
    amount: float
    transaction_type: TransactionType
    description: Optional[str]
    evaluation_id: Optional[int]
    balance_after: float
    created_at: datetime

    class Config:
        from_attributes = True


class CreditAddResponse(BalanceResponse):
    amount_added: float
    transaction: TransactionResponse


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    pagination: Pagination


class CreditStatsResponse(BaseModel):
    total_added: float
    total_used: float
    current_balance: float
    usage_percent: float
