"""Prepaid credit models."""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlalchemy import String, DateTime, Integer, Numeric, Enum as SQLEnum, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from qa_center.core.database import Base


class TransactionType(str, Enum):
    """Credit transaction type."""
    ADDITION = "addition"
    DEDUCTION = "deduction"


class CreditAccount(Base):
    """Running credit balance. A deployment holds exactly one row."""

    __tablename__ = "credit_accounts"
    __table_args__ = (
        CheckConstraint(
            "low_balance_threshold >= 0 AND low_balance_threshold <= 100",
            name="low_balance_threshold_percent",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    current_balance: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=Decimal("0"), nullable=False)
    low_balance_threshold: Mapped[int] = mapped_column(Integer, default=20, nullable=False)  # percent
    last_updated: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<CreditAccount(id={self.id}, balance={self.current_balance})>"


class CreditTransaction(Base):
    """Append-only ledger entry."""

    __tablename__ = "credit_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="credit_amount_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        SQLEnum(TransactionType, native_enum=False), nullable=False, index=True
    )
    description: Mapped[Optional[str]] = mapped_column(String(500))
    evaluation_id: Mapped[Optional[int]] = mapped_column(Integer, index=True)  # set for deductions
    balance_after: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    @property
    def signed_amount(self) -> Decimal:
        if self.transaction_type == TransactionType.ADDITION:
            return Decimal(self.amount)
        return -Decimal(self.amount)

    def __repr__(self) -> str:
        return (
            f"<CreditTransaction(id={self.id}, type={self.transaction_type}, "
            f"amount={self.amount}, balance_after={self.balance_after})>"
        )
