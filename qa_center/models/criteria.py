"""Criteria profile model."""
import json
from datetime import datetime
from typing import Optional
from sqlalchemy import String, Boolean, DateTime, Integer, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column
from qa_center.core.database import Base


DEFAULT_SCHEDULER = {
    "enabled": False,
    "cronExpression": "0 17 * * *",
    "maxEvaluations": 50,
    "evaluatorId": "system",
    "evaluatorName": "Automated System",
    "lastRun": None,
    "lastRunStatus": None,
    "lastRunSummary": None,
}


def _json_list(value: Optional[str]) -> list:
    return json.loads(value) if value else []


class CriteriaProfile(Base):
    """Saved rule set selecting which interactions get evaluated automatically."""

    __tablename__ = "criteria_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    # Selection rules (JSON strings)
    queues_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)  # [{queueId, queueName}]
    work_codes_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)  # [{code, description}]
    agents_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)  # [{agentId, agentName}]
    channels_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)  # ["call", "email", ...]
    min_call_duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # seconds
    direction: Mapped[str] = mapped_column(String(20), default="all", nullable=False)  # inbound, outbound, all

    # Evaluation form
    form_id: Mapped[str] = mapped_column(String(100), nullable=False)
    form_name: Mapped[str] = mapped_column(String(255), nullable=False)

    scheduler_json: Mapped[str] = mapped_column(Text, default=lambda: json.dumps(DEFAULT_SCHEDULER), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    updated_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    @property
    def queues(self) -> list:
        return _json_list(self.queues_json)

    @queues.setter
    def queues(self, value: list) -> None:
        self.queues_json = json.dumps(value or [])

    @property
    def work_codes(self) -> list:
        return _json_list(self.work_codes_json)

    @work_codes.setter
    def work_codes(self, value: list) -> None:
        self.work_codes_json = json.dumps(value or [])

    @property
    def agents(self) -> list:
        return _json_list(self.agents_json)

    @agents.setter
    def agents(self, value: list) -> None:
        self.agents_json = json.dumps(value or [])

    @property
    def channels(self) -> list:
        return _json_list(self.channels_json)

    @channels.setter
    def channels(self, value: list) -> None:
        self.channels_json = json.dumps(value or [])

    @property
    def scheduler(self) -> dict:
        """Scheduler config merged over defaults so older rows always carry every key."""
        stored = json.loads(self.scheduler_json) if self.scheduler_json else {}
        return {**DEFAULT_SCHEDULER, **stored}

    @scheduler.setter
    def scheduler(self, value: dict) -> None:
        self.scheduler_json = json.dumps({**DEFAULT_SCHEDULER, **(value or {})}, default=str)

    @property
    def scheduler_enabled(self) -> bool:
        return bool(self.scheduler.get("enabled"))

    def __repr__(self) -> str:
        return f"<CriteriaProfile(id={self.id}, name={self.name}, active={self.is_active})>"
