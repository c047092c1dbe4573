"""Seed an admin, an agent, starting credit, a criteria profile and sample interactions for local development."""
import asyncio
import sys
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from qa_center.auth.permissions import admin_permissions, empty_permissions
from qa_center.core.database import AsyncSessionLocal, init_db, engine
from qa_center.core.security import get_password_hash
from qa_center.credits.service import add_credits
from qa_center.models import CriteriaProfile, Interaction, InteractionMessage, User
from qa_center.models.interaction import DIRECTION_INBOUND, DIRECTION_OUTBOUND


async def seed_data():
    """Seed database with initial data."""
    await init_db()

    async with AsyncSessionLocal() as db:
        existing = await db.execute(select(User).where(User.username == "admin"))
        if existing.scalar_one_or_none():
            print("Seed data already present, skipping")
            return

        admin = User(
            username="admin",
            email="admin@example.com",
            hashed_password=get_password_hash("admin12345"),
            first_name="Admin",
            is_agent=False,
        )
        admin.permissions = admin_permissions()
        agent = User(
            username="agent1",
            email="agent1@example.com",
            hashed_password=get_password_hash("agent12345"),
            first_name="Alex",
            last_name="Agent",
            is_agent=True,
            agent_id="1001",
        )
        permissions = empty_permissions()
        permissions["dashboard"]["read"] = True
        agent.permissions = permissions
        db.add_all([admin, agent])
        await db.flush()

        profile = CriteriaProfile(
            name="Support calls",
            description="Inbound support calls longer than a minute",
            form_id="default-form",
            form_name="Default QA Form",
            min_call_duration=60,
            direction="inbound",
            created_by=admin.id,
        )
        profile.queues = [{"queueId": "q-support", "queueName": "Support"}]
        profile.channels = ["call"]
        db.add(profile)

        now = datetime.utcnow()
        for index in range(5):
            db.add(Interaction(
                external_id=f"call-{index + 1}",
                channel="call",
                direction=DIRECTION_INBOUND,
                agent_id="1001",
                agent_name="Alex Agent",
                queue_id="q-support",
                queue_name="Support",
                work_code="billing",
                connect_duration=90 + index * 30,
                recording_url=f"https://recordings.example.com/call-{index + 1}.mp3",
                created_at=now - timedelta(hours=index + 1),
            ))

        email = Interaction(
            external_id="email-1",
            channel="email",
            direction=DIRECTION_INBOUND,
            agent_id="1001",
            agent_name="Alex Agent",
            queue_id="q-support",
            queue_name="Support",
            created_at=now - timedelta(hours=2),
        )
        db.add(email)
        await db.flush()
        db.add_all([
            InteractionMessage(
                interaction_id=email.id,
                channel="email",
                direction=DIRECTION_INBOUND,
                author_name="Customer",
                subject="Invoice question",
                text="Hi, why was I charged twice?",
                created_at=now - timedelta(hours=2),
            ),
            InteractionMessage(
                interaction_id=email.id,
                channel="email",
                direction=DIRECTION_OUTBOUND,
                author_name="Alex Agent",
                subject="Re: Invoice question",
                text=(
                    "Sorry about that, the duplicate charge has been refunded.\n\n"
                    "On Mon, Jan 5, 2026 at 10:00 AM Customer wrote:\n"
                    "> Hi, why was I charged twice?"
                ),
                created_at=now - timedelta(hours=1),
            ),
        ])
        await db.commit()

        await add_credits(db, 100, "Initial credit")
        print("Seed data created: admin/admin12345, agent1/agent12345")


async def main():
    try:
        await seed_data()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
