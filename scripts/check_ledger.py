#!/usr/bin/env python3
"""
Replay the credit ledger and report the first entry whose balance_after is wrong.

Usage:
    python scripts/check_ledger.py
"""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from qa_center.core.database import AsyncSessionLocal, engine
from qa_center.credits.service import get_balance, replay_transactions, to_amount
from qa_center.models.credit import CreditTransaction


async def check_ledger() -> bool:
    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(CreditTransaction).order_by(CreditTransaction.created_at, CreditTransaction.id)
        )
        transactions = result.scalars().all()
        mismatch = replay_transactions(transactions)

        if mismatch is not None:
            print(
                f"Mismatch at transaction {mismatch.id} ({mismatch.created_at}): "
                f"stored balance_after={mismatch.balance_after}"
            )
            return False

        balance = await get_balance(session)
        replayed = sum((to_amount(tx.signed_amount) for tx in transactions), to_amount(0))
        print(f"Replayed {len(transactions)} transactions, ledger balance {replayed}")
        if replayed != to_amount(balance["current_balance"]):
            print(f"Account balance {balance['current_balance']} does not match the ledger")
            return False
        print("Ledger is consistent")
        return True


async def main():
    try:
        ok = await check_ledger()
    finally:
        await engine.dispose()
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    asyncio.run(main())
