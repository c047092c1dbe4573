"""Pydantic schemas for criteria profiles and their scheduler settings."""
from typing import Optional, List, Dict, Any, Literal
from pydantic import BaseModel, Field, ValidationError, field_validator
from qa_center.core.config import settings
from qa_center.scheduler.cron import validate_cron


class SchedulerConfig(BaseModel):
    """Scheduler settings embedded in a criteria profile."""
    enabled: bool = False
    cronExpression: str = "0 17 * * *"
    maxEvaluations: int = 50
    evaluatorId: Optional[str] = "system"
    evaluatorName: Optional[str] = "Automated System"

    class Config:
        extra = "ignore"

    @field_validator("cronExpression")
    @classmethod
    def cron_is_valid(cls, v):
        if not validate_cron(v):
            raise ValueError("Invalid cron expression")
        return " ".join(v.split())

    @field_validator("maxEvaluations")
    @classmethod
    def max_evaluations_in_range(cls, v):
        ceiling = settings.scheduler_max_evaluations
        if not 1 <= v <= ceiling:
            raise ValueError(f"maxEvaluations must be between 1 and {ceiling}")
        return v


def normalize_channels(channels: Optional[List[str]]) -> Optional[List[str]]:
    """Lower-case, de-duplicate and reject unknown channel names."""
    if channels is None:
        return None
    normalized = []
    for channel in channels:
        value = channel.lower()
        if value not in ("call", "email", "chat"):
            raise ValueError(f"Unknown channel: {channel}")
        if value not in normalized:
            normalized.append(value)
    return normalized


class EvaluationForm(BaseModel):
    formId: str = Field(..., min_length=1)
    formName: str = Field(..., min_length=1)


class CriteriaProfileBase(BaseModel):
    description: Optional[str] = None
    queues: List[Dict[str, Any]] = Field(default_factory=list)
    workCodes: List[Dict[str, Any]] = Field(default_factory=list)
    agents: List[Dict[str, Any]] = Field(default_factory=list)
    channels: List[str] = Field(default_factory=list)
    minCallDuration: int = Field(0, ge=0)
    direction: Literal["inbound", "outbound", "all"] = "all"
    isActive: bool = True

    @field_validator("channels")
    @classmethod
    def channels_known(cls, v):
        return normalize_channels(v)


class CriteriaProfileCreate(CriteriaProfileBase):
    name: str = Field(..., min_length=1, max_length=255)
    evaluationForm: EvaluationForm
    scheduler: Optional[Dict[str, Any]] = None


class CriteriaProfileUpdate(BaseModel):
    """Partial update; only fields present in the body change."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    queues: Optional[List[Dict[str, Any]]] = None
    workCodes: Optional[List[Dict[str, Any]]] = None
    agents: Optional[List[Dict[str, Any]]] = None
    channels: Optional[List[str]] = None
    minCallDuration: Optional[int] = Field(None, ge=0)
    direction: Optional[Literal["inbound", "outbound", "all"]] = None
    evaluationForm: Optional[EvaluationForm] = None
    isActive: Optional[bool] = None
    scheduler: Optional[Dict[str, Any]] = None

    @field_validator("channels")
    @classmethod
    def channels_known(cls, v):
        return normalize_channels(v)


class RunRequest(BaseModel):
    maxEvaluations: Optional[int] = None


def profile_to_dict(profile) -> Dict[str, Any]:
    """API representation of a criteria profile."""
    return {
        "id": profile.id,
        "name": profile.name,
        "description": profile.description,
        "queues": profile.queues,
        "workCodes": profile.work_codes,
        "agents": profile.agents,
        "channels": profile.channels,
        "minCallDuration": profile.min_call_duration,
        "direction": profile.direction,
        "evaluationForm": {"formId": profile.form_id, "formName": profile.form_name},
        "isActive": profile.is_active,
        "scheduler": profile.scheduler,
        "createdBy": profile.created_by,
        "updatedBy": profile.updated_by,
        "createdAt": profile.created_at,
        "updatedAt": profile.updated_at,
    }


def parse_scheduler_config(raw: Optional[Dict[str, Any]], current: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Merge ``raw`` over ``current`` and validate the result.

    Raises:
        ValueError: with a readable message when the config is invalid
    """
    merged = {**(current or {}), **(raw or {})}
    try:
        config = SchedulerConfig.model_validate(merged)
    except ValidationError as e:
        messages = [str(err.get("ctx", {}).get("error", err["msg"])) for err in e.errors()]
        raise ValueError("; ".join(messages))
    return {**merged, **config.model_dump()}
