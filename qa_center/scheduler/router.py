"""Scheduler endpoints: per-profile settings, manual runs, history."""
import logging
from typing import Optional, Dict, Any
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from qa_center.auth.dependencies import require_permission
from qa_center.core.config import settings
from qa_center.core.database import get_db
from qa_center.criteria.schemas import RunRequest, parse_scheduler_config
from qa_center.models.criteria import CriteriaProfile
from qa_center.models.scheduler import SchedulerRun
from qa_center.models.user import User
from qa_center.scheduler.cron import CRON_PRESETS, describe_cron
from qa_center.scheduler.service import (
    SchedulerService,
    SchedulerError,
    ProfileNotFoundError,
    get_scheduler_service,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scheduler", tags=["Scheduler"])


@router.get("/presets")
async def get_presets(current_user: User = Depends(require_permission("criteria.read"))):
    """Common cron expressions with their labels."""
    return [{"value": value, "label": label} for value, label in CRON_PRESETS]


@router.get("/profile/{profile_id}")
async def get_scheduler_settings(
    profile_id: int,
    current_user: User = Depends(require_permission("criteria.read")),
    db: AsyncSession = Depends(get_db),
):
    profile = await db.get(CriteriaProfile, profile_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    scheduler = profile.scheduler
    return {
        "scheduler": scheduler,
        "schedule": describe_cron(scheduler.get("cronExpression")),
        "profileName": profile.name,
        "isActive": profile.is_active,
    }


@router.put("/profile/{profile_id}")
async def update_scheduler_settings(
    profile_id: int,
    config: Dict[str, Any] = Body(...),
    current_user: User = Depends(require_permission("criteria.write")),
    db: AsyncSession = Depends(get_db),
    scheduler: SchedulerService = Depends(get_scheduler_service),
):
    """Replace scheduler settings and start or stop the profile's job."""
    try:
        validated = parse_scheduler_config(config)
        profile = await scheduler.update_scheduler(db, profile_id, validated)
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (SchedulerError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"message": "Scheduler updated successfully", "scheduler": profile.scheduler}


@router.post("/run/{profile_id}")
async def run_now(
    profile_id: int,
    payload: Optional[RunRequest] = Body(None),
    current_user: User = Depends(require_permission("criteria.write")),
    db: AsyncSession = Depends(get_db),
    scheduler: SchedulerService = Depends(get_scheduler_service),
):
    """
    Queue evaluations for a profile right away and return the run summary.

    A run that finds nothing is still a success.
    """
    max_evaluations = payload.maxEvaluations if payload else None
    ceiling = settings.scheduler_max_evaluations
    if max_evaluations is not None and not 1 <= max_evaluations <= ceiling:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"maxEvaluations must be between 1 and {ceiling}",
        )

    evaluator = {
        "id": current_user.id,
        "name": current_user.username or current_user.first_name or "Manual Run",
    }
    try:
        result = await scheduler.run_profile(db, profile_id, max_evaluations, evaluator, trigger="manual")
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    message = (
        "Scheduled evaluation started successfully" if result["success"] else "Scheduled evaluation failed"
    )
    return {"message": message, "result": result}


@router.get("/history/{profile_id}")
async def get_history(
    profile_id: int,
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(require_permission("criteria.read")),
    db: AsyncSession = Depends(get_db),
):
    """Most recent runs first."""
    result = await db.execute(
        select(SchedulerRun)
        .where(SchedulerRun.profile_id == profile_id)
        .order_by(SchedulerRun.started_at.desc(), SchedulerRun.id.desc())
        .limit(limit)
    )
    return [
        {
            "id": run.id,
            "profileId": run.profile_id,
            "trigger": run.trigger,
            "status": run.status,
            "interactionsFound": run.interactions_found,
            "interactionsProcessed": run.interactions_processed,
            "maxEvaluations": run.max_evaluations,
            "evaluatorName": run.evaluator_name,
            "jobIds": run.job_ids,
            "error": run.error,
            "startTime": run.started_at,
            "endTime": run.finished_at,
        }
        for run in result.scalars().all()
    ]


@router.get("/active")
async def get_active(
    current_user: User = Depends(require_permission("criteria.read")),
    db: AsyncSession = Depends(get_db),
    scheduler: SchedulerService = Depends(get_scheduler_service),
):
    """Active profiles with scheduling enabled, flagged with whether a job is registered."""
    result = await db.execute(
        select(CriteriaProfile).where(CriteriaProfile.is_active.is_(True)).order_by(CriteriaProfile.name)
    )
    running = set(scheduler.active_profile_ids())
    return [
        {
            "id": profile.id,
            "name": profile.name,
            "scheduler": profile.scheduler,
            "schedule": describe_cron(profile.scheduler.get("cronExpression")),
            "evaluationForm": {"formId": profile.form_id, "formName": profile.form_name},
            "isRunning": profile.id in running,
        }
        for profile in result.scalars().all()
        if profile.scheduler_enabled
    ]
