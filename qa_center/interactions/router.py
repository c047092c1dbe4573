"""Interaction search and message thread endpoints."""
import logging
from datetime import datetime
from typing import Optional, List, Literal
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from qa_center.auth.dependencies import get_current_active_user
from qa_center.core.database import get_db
from qa_center.interactions.channels import channel_from_value, display_title
from qa_center.interactions.messages import messages_payload
from qa_center.models.interaction import Interaction, InteractionMessage
from qa_center.models.user import User


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interactions", tags=["Interactions"])


class InteractionSearch(BaseModel):
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    queues: List[str] = Field(default_factory=list)
    agents: List[str] = Field(default_factory=list)
    workCodes: List[str] = Field(default_factory=list)
    channels: List[str] = Field(default_factory=list)
    minDuration: Optional[int] = Field(None, ge=0)
    durationComparison: Literal[">", "<", "="] = ">"
    direction: Optional[Literal["0", "1", "all"]] = None
    excludeEvaluated: bool = False
    limit: int = Field(200, ge=1, le=1000)


def _interaction_to_dict(interaction: Interaction) -> dict:
    channel = channel_from_value(interaction.channel)
    return {
        "id": interaction.id,
        "externalId": interaction.external_id,
        "channel": channel.value,
        "title": display_title(channel),
        "direction": interaction.direction,
        "agent": {"id": interaction.agent_id, "name": interaction.agent_name},
        "queue": {"id": interaction.queue_id, "name": interaction.queue_name},
        "workCode": interaction.work_code,
        "duration": interaction.connect_duration,
        "recordingUrl": interaction.recording_url,
        "evaluated": interaction.evaluated,
        "createdAt": interaction.created_at,
    }


def _check_access(user: User, interaction: Interaction) -> None:
    """Agents may only open their own interactions."""
    if user.is_admin:
        return
    if not user.agent_id or user.agent_id != interaction.agent_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


@router.post("/search")
async def search_interactions(
    filters: InteractionSearch,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Interactions with recordings matching the filters, newest first."""
    stmt = select(Interaction).where(
        Interaction.recording_url.is_not(None),
        Interaction.recording_url != "",
    )

    if filters.excludeEvaluated:
        stmt = stmt.where(Interaction.evaluated.is_(False))
    if filters.startDate:
        stmt = stmt.where(Interaction.created_at >= filters.startDate)
    if filters.endDate:
        stmt = stmt.where(Interaction.created_at <= filters.endDate)
    if filters.queues:
        stmt = stmt.where(or_(Interaction.queue_id.in_(filters.queues), Interaction.queue_name.in_(filters.queues)))
    if filters.agents:
        stmt = stmt.where(Interaction.agent_id.in_(filters.agents))
    if filters.workCodes:
        stmt = stmt.where(Interaction.work_code.in_(filters.workCodes))
    if filters.channels:
        stmt = stmt.where(Interaction.channel.in_([channel.lower() for channel in filters.channels]))
    if filters.minDuration is not None:
        if filters.durationComparison == "<":
            stmt = stmt.where(Interaction.connect_duration < filters.minDuration)
        elif filters.durationComparison == "=":
            stmt = stmt.where(Interaction.connect_duration == filters.minDuration)
        else:
            stmt = stmt.where(Interaction.connect_duration > filters.minDuration)
    if filters.direction and filters.direction != "all":
        stmt = stmt.where(Interaction.direction == int(filters.direction))

    # Agents only ever see their own interactions
    if not current_user.is_admin:
        stmt = stmt.where(Interaction.agent_id == current_user.agent_id)

    stmt = stmt.order_by(Interaction.created_at.desc(), Interaction.id.desc()).limit(filters.limit)
    result = await db.execute(stmt)
    return [_interaction_to_dict(interaction) for interaction in result.scalars().all()]


@router.get("/{interaction_id}/messages")
async def get_messages(
    interaction_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Messages or emails of an interaction formatted as a conversation."""
    interaction = await db.get(Interaction, interaction_id)
    if not interaction:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Interaction not found")
    _check_access(current_user, interaction)

    result = await db.execute(
        select(InteractionMessage)
        .where(InteractionMessage.interaction_id == interaction.id)
        .order_by(InteractionMessage.created_at, InteractionMessage.id)
    )
    return messages_payload(interaction, result.scalars().all())
