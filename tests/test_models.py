import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from qa_center.models import (
    CreditTransaction,
    CriteriaProfile,
    Interaction,
    InteractionMessage,
    TransactionType,
    User,
)
from qa_center.models.criteria import DEFAULT_SCHEDULER


@pytest.mark.asyncio
async def test_user_defaults(db_session):
    user = User(username="alice", email="alice@example.com", hashed_password="hashed")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)

    assert user.is_active is True
    assert user.is_agent is True
    assert user.is_admin is False
    assert user.permissions == {}
    assert isinstance(user.created_at, datetime)


@pytest.mark.asyncio
async def test_criteria_profile_json_fields(db_session):
    profile = CriteriaProfile(name="Support", form_id="f1", form_name="Form 1")
    profile.queues = [{"queueId": "q1", "queueName": "Support"}]
    profile.channels = ["call", "email"]
    db_session.add(profile)
    await db_session.commit()
    await db_session.refresh(profile)

    assert profile.queues == [{"queueId": "q1", "queueName": "Support"}]
    assert profile.channels == ["call", "email"]
    assert profile.agents == []
    assert profile.scheduler == DEFAULT_SCHEDULER
    assert profile.scheduler_enabled is False


@pytest.mark.asyncio
async def test_scheduler_setter_merges_over_defaults(db_session):
    profile = CriteriaProfile(name="Nightly", form_id="f1", form_name="Form 1")
    profile.scheduler = {"enabled": True, "cronExpression": "0 2 * * *"}

    assert profile.scheduler["enabled"] is True
    assert profile.scheduler["cronExpression"] == "0 2 * * *"
    assert profile.scheduler["maxEvaluations"] == DEFAULT_SCHEDULER["maxEvaluations"]
    assert profile.scheduler_enabled is True


@pytest.mark.asyncio
async def test_interaction_messages_ordered_by_time(db_session):
    now = datetime.utcnow()
    interaction = Interaction(external_id="chat-1", channel="chat", recording_url=None)
    db_session.add(interaction)
    await db_session.flush()
    db_session.add_all([
        InteractionMessage(interaction_id=interaction.id, text="second", created_at=now),
        InteractionMessage(interaction_id=interaction.id, text="first", created_at=now - timedelta(minutes=1)),
    ])
    await db_session.commit()

    result = await db_session.execute(
        select(Interaction).options(selectinload(Interaction.messages)).where(Interaction.id == interaction.id)
    )
    loaded = result.scalar_one()
    assert [message.text for message in loaded.messages] == ["first", "second"]
    assert loaded.messages[0].attachments == []


def test_signed_amount():
    addition = CreditTransaction(
        amount=Decimal("50"), transaction_type=TransactionType.ADDITION, balance_after=Decimal("150")
    )
    deduction = CreditTransaction(
        amount=Decimal("20"), transaction_type=TransactionType.DEDUCTION, balance_after=Decimal("130")
    )
    assert addition.signed_amount == Decimal("50")
    assert deduction.signed_amount == Decimal("-20")
