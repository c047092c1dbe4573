"""Evaluation results and the queue of pending evaluation jobs."""
import json
from datetime import datetime
from enum import Enum
from typing import Optional
from sqlalchemy import String, DateTime, Integer, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from qa_center.core.database import Base


class Evaluation(Base):
    """Completed QA evaluation with the usage it consumed."""

    __tablename__ = "evaluations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    interaction_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("interactions.id", ondelete="SET NULL"), index=True
    )
    qa_form_id: Mapped[str] = mapped_column(String(100), nullable=False)
    qa_form_name: Mapped[str] = mapped_column(String(255), nullable=False)
    evaluator_id: Mapped[Optional[str]] = mapped_column(String(100))
    evaluator_name: Mapped[Optional[str]] = mapped_column(String(255))

    # Snapshot of the interaction at evaluation time
    agent_id: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    agent_name: Mapped[Optional[str]] = mapped_column(String(255))
    queue_id: Mapped[Optional[str]] = mapped_column(String(100))
    queue_name: Mapped[Optional[str]] = mapped_column(String(255))
    channel: Mapped[str] = mapped_column(String(20), default="call", nullable=False)
    duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # seconds of audio

    # LLM usage
    prompt_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completion_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_tokens: Mapped[Optional[int]] = mapped_column(Integer)

    # Manual cost overrides recorded by an admin: {field: value, updatedAt, updatedBy}
    cost_model_json: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    @property
    def cost_model(self) -> dict:
        return json.loads(self.cost_model_json) if self.cost_model_json else {}

    @cost_model.setter
    def cost_model(self, value: dict) -> None:
        self.cost_model_json = json.dumps(value or {}, default=str)

    def __repr__(self) -> str:
        return f"<Evaluation(id={self.id}, interaction_id={self.interaction_id})>"


class JobStatus(str, Enum):
    """Evaluation job status."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class EvaluationJob(Base):
    """Queued request to evaluate one interaction; consumed by the evaluation worker."""

    __tablename__ = "evaluation_jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    interaction_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("interactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    profile_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("criteria_profiles.id", ondelete="SET NULL"), index=True
    )
    qa_form_id: Mapped[str] = mapped_column(String(100), nullable=False)
    recording_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    evaluator_id: Mapped[Optional[str]] = mapped_column(String(100))
    evaluator_name: Mapped[Optional[str]] = mapped_column(String(255))
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(JobStatus, native_enum=False), default=JobStatus.QUEUED, nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<EvaluationJob(id={self.id}, interaction_id={self.interaction_id}, status={self.status})>"
