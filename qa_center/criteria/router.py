"""Criteria profile CRUD."""
import logging
from typing import List, Dict, Any
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from qa_center.auth.dependencies import require_permission
from qa_center.core.database import get_db
from qa_center.criteria.schemas import (
    CriteriaProfileCreate,
    CriteriaProfileUpdate,
    parse_scheduler_config,
    profile_to_dict,
)
from qa_center.models.criteria import CriteriaProfile, DEFAULT_SCHEDULER
from qa_center.models.user import User
from qa_center.scheduler.service import SchedulerService, get_scheduler_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/criteria", tags=["Criteria Profiles"])


async def _get_profile(db: AsyncSession, profile_id: int) -> CriteriaProfile:
    profile = await db.get(CriteriaProfile, profile_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Criteria profile not found")
    return profile


def _scheduler_or_400(raw, current) -> Dict[str, Any]:
    try:
        return parse_scheduler_config(raw, current)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("", response_model=List[Dict[str, Any]])
async def list_profiles(
    current_user: User = Depends(require_permission("criteria.read")),
    db: AsyncSession = Depends(get_db),
):
    """All criteria profiles, newest first."""
    result = await db.execute(select(CriteriaProfile).order_by(CriteriaProfile.created_at.desc(), CriteriaProfile.id.desc()))
    return [profile_to_dict(profile) for profile in result.scalars().all()]


@router.get("/{profile_id}")
async def get_profile(
    profile_id: int,
    current_user: User = Depends(require_permission("criteria.read")),
    db: AsyncSession = Depends(get_db),
):
    return profile_to_dict(await _get_profile(db, profile_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_profile(
    payload: CriteriaProfileCreate,
    current_user: User = Depends(require_permission("criteria.write")),
    db: AsyncSession = Depends(get_db),
    scheduler: SchedulerService = Depends(get_scheduler_service),
):
    """
    Create a profile. When scheduling is enabled the cron job is registered
    once the row is committed; no run is triggered.
    """
    scheduler_config = _scheduler_or_400(payload.scheduler, DEFAULT_SCHEDULER)

    profile = CriteriaProfile(
        name=payload.name,
        description=payload.description,
        min_call_duration=payload.minCallDuration,
        direction=payload.direction,
        form_id=payload.evaluationForm.formId,
        form_name=payload.evaluationForm.formName,
        is_active=payload.isActive,
        created_by=current_user.id,
        updated_by=current_user.id,
    )
    profile.queues = payload.queues
    profile.work_codes = payload.workCodes
    profile.agents = payload.agents
    profile.channels = payload.channels
    profile.scheduler = scheduler_config

    db.add(profile)
    await db.commit()
    await db.refresh(profile)

    if profile.scheduler_enabled:
        scheduler.start_profile(profile)

    logger.info(f"Criteria profile created: {profile.name} (id={profile.id})")
    return profile_to_dict(profile)


@router.put("/{profile_id}")
async def update_profile(
    profile_id: int,
    payload: CriteriaProfileUpdate,
    current_user: User = Depends(require_permission("criteria.write")),
    db: AsyncSession = Depends(get_db),
    scheduler: SchedulerService = Depends(get_scheduler_service),
):
    profile = await _get_profile(db, profile_id)
    data = payload.model_dump(exclude_unset=True)

    if "scheduler" in data:
        profile.scheduler = _scheduler_or_400(data["scheduler"], profile.scheduler)
    if "name" in data:
        profile.name = data["name"]
    if "description" in data:
        profile.description = data["description"]
    if "queues" in data:
        profile.queues = data["queues"]
    if "workCodes" in data:
        profile.work_codes = data["workCodes"]
    if "agents" in data:
        profile.agents = data["agents"]
    if "channels" in data:
        profile.channels = data["channels"]
    if data.get("minCallDuration") is not None:
        profile.min_call_duration = data["minCallDuration"]
    if data.get("direction"):
        profile.direction = data["direction"]
    if payload.evaluationForm is not None:
        profile.form_id = payload.evaluationForm.formId
        profile.form_name = payload.evaluationForm.formName
    if data.get("isActive") is not None:
        profile.is_active = data["isActive"]
    profile.updated_by = current_user.id

    await db.commit()
    await db.refresh(profile)

    # start_profile drops the job when the profile is inactive or disabled
    scheduler.start_profile(profile)
    return profile_to_dict(profile)


@router.delete("/{profile_id}")
async def delete_profile(
    profile_id: int,
    current_user: User = Depends(require_permission("criteria.write")),
    db: AsyncSession = Depends(get_db),
    scheduler: SchedulerService = Depends(get_scheduler_service),
):
    profile = await _get_profile(db, profile_id)
    scheduler.stop_profile(profile.id)
    await db.delete(profile)
    await db.commit()
    logger.info(f"Criteria profile deleted: {profile_id}")
    return {"message": "Criteria profile deleted"}
