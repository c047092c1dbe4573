"""Scheduler run history model."""
import json
from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, Integer, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column
from qa_center.core.database import Base


class SchedulerRun(Base):
    """One execution of a profile's evaluation run, scheduled or manual."""

    __tablename__ = "scheduler_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    profile_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("criteria_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    trigger: Mapped[str] = mapped_column(String(20), default="cron", nullable=False)  # cron, manual
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # success, partial, failed
    interactions_found: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    interactions_processed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_evaluations: Mapped[int] = mapped_column(Integer, nullable=False)
    evaluator_id: Mapped[Optional[str]] = mapped_column(String(100))
    evaluator_name: Mapped[Optional[str]] = mapped_column(String(255))
    error: Mapped[Optional[str]] = mapped_column(Text)
    job_ids_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)

    started_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    @property
    def job_ids(self) -> list:
        return json.loads(self.job_ids_json or "[]")

    def __repr__(self) -> str:
        return f"<SchedulerRun(id={self.id}, profile_id={self.profile_id}, status={self.status})>"
