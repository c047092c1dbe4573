"""Prepaid credit ledger.

The deployment holds a single ``CreditAccount`` row. Every balance change
appends a ``CreditTransaction`` carrying the balance after the change, so the
ledger replayed in order reproduces the account state.
"""
import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence, Dict, Any
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from qa_center.core.config import settings
from qa_center.models.credit import CreditAccount, CreditTransaction, TransactionType


logger = logging.getLogger(__name__)

AMOUNT_QUANTUM = Decimal("0.0001")
# Numeric(12, 4) columns hold at most eight integer digits
MAX_AMOUNT = Decimal("100000000")


class CreditError(ValueError):
    """Invalid credit operation (bad amount or threshold)."""


def to_amount(value) -> Decimal:
    """Convert user input to a ledger amount with four decimal places."""
    try:
        return Decimal(str(value)).quantize(AMOUNT_QUANTUM)
    except InvalidOperation:
        raise CreditError(f"Invalid amount: {value}")


def compute_is_low(balance: Decimal, threshold: int, total_added: Decimal) -> bool:
    """
    Low-balance flag.

    True when the balance is at or below zero, or at or below ``threshold``
    percent of all credits ever added.
    """
    balance = Decimal(balance)
    if balance <= 0:
        return True
    return balance * 100 <= Decimal(threshold) * Decimal(total_added)


async def _get_account(db: AsyncSession, for_update: bool = False) -> CreditAccount:
    """Load the account row, creating it on first access."""
    stmt = select(CreditAccount).order_by(CreditAccount.id).limit(1)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    account = result.scalar_one_or_none()
    if account is None:
        account = CreditAccount(
            current_balance=Decimal("0"),
            low_balance_threshold=settings.default_low_balance_threshold,
        )
        db.add(account)
        await db.flush()
        logger.info("Created credit account")
    return account


async def _sum_by_type(db: AsyncSession, transaction_type: TransactionType) -> Decimal:
    result = await db.execute(
        select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
            CreditTransaction.transaction_type == transaction_type
        )
    )
    return to_amount(result.scalar_one())


async def total_added(db: AsyncSession) -> Decimal:
    """Sum of all additions ever made."""
    return await _sum_by_type(db, TransactionType.ADDITION)


async def _balance_view(db: AsyncSession, account: CreditAccount) -> Dict[str, Any]:
    added = await total_added(db)
    return {
        "id": account.id,
        "current_balance": Decimal(account.current_balance),
        "low_balance_threshold": account.low_balance_threshold,
        "is_low": compute_is_low(account.current_balance, account.low_balance_threshold, added),
        "last_updated": account.last_updated,
    }


async def get_balance(db: AsyncSession) -> Dict[str, Any]:
    """Current balance, threshold and low-balance flag."""
    account = await _get_account(db)
    view = await _balance_view(db, account)
    await db.commit()
    return view


async def _append(
    db: AsyncSession,
    transaction_type: TransactionType,
    amount,
    description: Optional[str],
    evaluation_id: Optional[int] = None,
) -> Dict[str, Any]:
    amount = to_amount(amount)
    if amount <= 0:
        raise CreditError("Invalid amount. Must be greater than 0.")
    if amount >= MAX_AMOUNT:
        raise CreditError(f"Invalid amount. Must be less than {MAX_AMOUNT}.")

    account = await _get_account(db, for_update=True)
    balance = Decimal(account.current_balance)
    new_balance = balance + amount if transaction_type == TransactionType.ADDITION else balance - amount

    transaction = CreditTransaction(
        amount=amount,
        transaction_type=transaction_type,
        description=description,
        evaluation_id=evaluation_id,
        balance_after=new_balance,
    )
    account.current_balance = new_balance
    db.add(transaction)
    await db.flush()

    view = await _balance_view(db, account)
    await db.commit()
    await db.refresh(transaction)
    return {"transaction": transaction, **view}


async def add_credits(db: AsyncSession, amount, description: Optional[str] = None) -> Dict[str, Any]:
    """
    Append an addition and raise the balance.

    Raises:
        CreditError: if amount is not greater than zero
    """
    result = await _append(db, TransactionType.ADDITION, amount, description)
    logger.info(
        f"Credits added: {result['transaction'].amount} "
        f"(balance={result['current_balance']}, low={result['is_low']})"
    )
    return result


async def deduct_credits(
    db: AsyncSession, amount, evaluation_id: Optional[int], description: Optional[str] = None
) -> Dict[str, Any]:
    """
    Append a deduction for an evaluation. The balance may go negative.

    Raises:
        CreditError: if amount is not greater than zero
    """
    result = await _append(
        db,
        TransactionType.DEDUCTION,
        amount,
        description or f"Evaluation {evaluation_id}",
        evaluation_id=evaluation_id,
    )
    if result["is_low"]:
        logger.warning(f"Credit balance is low: {result['current_balance']}")
    return result


async def update_threshold(db: AsyncSession, threshold: int) -> Dict[str, Any]:
    """Set the low-balance threshold percentage (0..100)."""
    if threshold is None or not 0 <= threshold <= 100:
        raise CreditError("Invalid threshold. Must be between 0 and 100.")

    account = await _get_account(db, for_update=True)
    account.low_balance_threshold = threshold
    await db.flush()
    view = await _balance_view(db, account)
    await db.commit()
    logger.info(f"Low balance threshold set to {threshold}%")
    return view


async def list_transactions(db: AsyncSession, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    """Newest-first ledger page with a pagination envelope."""
    page = max(page, 1)
    limit = max(limit, 1)
    offset = (page - 1) * limit

    total = (await db.execute(select(func.count(CreditTransaction.id)))).scalar_one()
    result = await db.execute(
        select(CreditTransaction)
        .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return {
        "transactions": list(result.scalars().all()),
        "pagination": {
            "total": total,
            "page": offset // limit + 1,
            "limit": limit,
            "pages": math.ceil(total / limit),
        },
    }


async def usage_stats(db: AsyncSession) -> Dict[str, Any]:
    """Totals added and used, with usage as a percentage of additions."""
    account = await _get_account(db)
    added = await total_added(db)
    used = await _sum_by_type(db, TransactionType.DEDUCTION)
    await db.commit()
    return {
        "total_added": added,
        "total_used": used,
        "current_balance": Decimal(account.current_balance),
        "usage_percent": (used / added * 100) if added > 0 else Decimal("0"),
    }


def replay_transactions(
    transactions: Sequence[CreditTransaction], opening_balance=Decimal("0")
) -> Optional[CreditTransaction]:
    """
    Replay ledger entries oldest first and return the first entry whose
    ``balance_after`` does not match, or None when the ledger is consistent.
    """
    balance = to_amount(opening_balance)
    for transaction in transactions:
        balance = balance + to_amount(transaction.signed_amount)
        if balance != to_amount(transaction.balance_after):
            return transaction
    return None
