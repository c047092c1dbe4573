"""Customer interactions (calls, emails, chats) and their messages."""
import json
from datetime import datetime
from typing import Optional
from sqlalchemy import String, Boolean, DateTime, Integer, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from qa_center.core.database import Base


# Interaction direction as stored by the contact-center platform
DIRECTION_INBOUND = 0
DIRECTION_OUTBOUND = 1


class Interaction(Base):
    """A single customer interaction that can be evaluated."""

    __tablename__ = "interactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    external_id: Mapped[Optional[str]] = mapped_column(String(100), unique=True, index=True)
    channel: Mapped[str] = mapped_column(String(20), default="call", nullable=False, index=True)
    direction: Mapped[int] = mapped_column(Integer, default=DIRECTION_INBOUND, nullable=False)

    # Routing
    agent_id: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    agent_name: Mapped[Optional[str]] = mapped_column(String(255))
    queue_id: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    queue_name: Mapped[Optional[str]] = mapped_column(String(255))
    work_code: Mapped[Optional[str]] = mapped_column(String(100))
    caller_id: Mapped[Optional[str]] = mapped_column(String(100))

    # Call details
    connect_duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # seconds
    recording_url: Mapped[Optional[str]] = mapped_column(String(1000))
    evaluated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    messages: Mapped[list["InteractionMessage"]] = relationship(
        "InteractionMessage",
        back_populates="interaction",
        cascade="all, delete-orphan",
        order_by="InteractionMessage.created_at",
    )

    def __repr__(self) -> str:
        return f"<Interaction(id={self.id}, channel={self.channel}, agent={self.agent_id})>"


class InteractionMessage(Base):
    """Chat message or email belonging to an interaction."""

    __tablename__ = "interaction_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    interaction_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("interactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    channel: Mapped[str] = mapped_column(String(20), default="chat", nullable=False)
    direction: Mapped[int] = mapped_column(Integer, default=DIRECTION_INBOUND, nullable=False)

    author_id: Mapped[Optional[str]] = mapped_column(String(255))
    author_name: Mapped[Optional[str]] = mapped_column(String(255))
    author_role: Mapped[Optional[str]] = mapped_column(String(20))  # customer, agent

    subject: Mapped[Optional[str]] = mapped_column(String(500))
    text: Mapped[Optional[str]] = mapped_column(Text)
    message_type: Mapped[str] = mapped_column(String(20), default="text", nullable=False)  # text, multimedia
    attachments_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)
    forwarded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    interaction: Mapped["Interaction"] = relationship("Interaction", back_populates="messages")

    @property
    def attachments(self) -> list:
        return json.loads(self.attachments_json or "[]")

    def __repr__(self) -> str:
        return f"<InteractionMessage(id={self.id}, interaction_id={self.interaction_id})>"
