"""Team and team membership routes (admin only)."""
import logging
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from qa_center.auth.dependencies import require_admin
from qa_center.core.database import get_db
from qa_center.models.user import User, Team, TeamMember


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/teams", tags=["Teams"])


# ============================================================================
# Schemas
# ============================================================================

class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    is_active: Optional[bool] = None


class TeamResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    is_active: bool
    created_by: int
    member_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class MemberAdd(BaseModel):
    user_id: int
    team_lead: bool = False


class MemberResponse(BaseModel):
    user_id: int
    username: str
    first_name: Optional[str]
    last_name: Optional[str]
    agent_id: Optional[str]
    team_lead: bool
    added_at: datetime


def _team_response(team: Team, member_count: int) -> TeamResponse:
    return TeamResponse(
        id=team.id,
        name=team.name,
        description=team.description,
        is_active=team.is_active,
        created_by=team.created_by,
        member_count=member_count,
        created_at=team.created_at,
    )


def _member_response(member: TeamMember) -> MemberResponse:
    return MemberResponse(
        user_id=member.user_id,
        username=member.user.username,
        first_name=member.user.first_name,
        last_name=member.user.last_name,
        agent_id=member.user.agent_id,
        team_lead=member.team_lead,
        added_at=member.created_at,
    )


async def _get_team(db: AsyncSession, team_id: int) -> Team:
    team = await db.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")
    return team


async def _member_count(db: AsyncSession, team_id: int) -> int:
    result = await db.execute(select(func.count(TeamMember.id)).where(TeamMember.team_id == team_id))
    return result.scalar() or 0


# ============================================================================
# Teams
# ============================================================================

@router.get("", response_model=List[TeamResponse])
async def list_teams(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """All teams with their member counts."""
    counts = (
        select(TeamMember.team_id, func.count(TeamMember.id).label("member_count"))
        .group_by(TeamMember.team_id)
        .subquery()
    )
    result = await db.execute(
        select(Team, func.coalesce(counts.c.member_count, 0))
        .outerjoin(counts, counts.c.team_id == Team.id)
        .order_by(Team.name)
    )
    return [_team_response(team, count) for team, count in result.all()]


@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    payload: TeamCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    existing = await db.execute(select(Team).where(Team.name == payload.name))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Team name already exists")

    team = Team(name=payload.name, description=payload.description, created_by=current_user.id)
    db.add(team)
    await db.commit()
    await db.refresh(team)
    logger.info(f"Team created: {team.name} by {current_user.username}")
    return _team_response(team, 0)


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    team = await _get_team(db, team_id)
    return _team_response(team, await _member_count(db, team.id))


@router.put("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: int,
    payload: TeamUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    team = await _get_team(db, team_id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("name") and data["name"] != team.name:
        clash = await db.execute(select(Team).where(Team.name == data["name"], Team.id != team.id))
        if clash.scalar_one_or_none():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Team name already exists")
        team.name = data["name"]
    if "description" in data:
        team.description = data["description"]
    if data.get("is_active") is not None:
        team.is_active = data["is_active"]

    await db.commit()
    await db.refresh(team)
    return _team_response(team, await _member_count(db, team.id))


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a team and its memberships. Users themselves are kept."""
    result = await db.execute(select(Team).options(selectinload(Team.members)).where(Team.id == team_id))
    team = result.scalar_one_or_none()
    if not team:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")
    await db.delete(team)
    await db.commit()
    logger.info(f"Team deleted: {team_id} by {current_user.username}")


# ============================================================================
# Members
# ============================================================================

@router.get("/{team_id}/members", response_model=List[MemberResponse])
async def list_members(
    team_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await _get_team(db, team_id)
    result = await db.execute(
        select(TeamMember)
        .options(selectinload(TeamMember.user))
        .where(TeamMember.team_id == team_id)
        .order_by(TeamMember.team_lead.desc(), TeamMember.created_at)
    )
    return [_member_response(member) for member in result.scalars().all()]


@router.post("/{team_id}/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    team_id: int,
    payload: MemberAdd,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await _get_team(db, team_id)
    user = await db.get(User, payload.user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    member = TeamMember(
        team_id=team_id,
        user_id=user.id,
        team_lead=payload.team_lead,
        added_by=current_user.id,
    )
    db.add(member)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already a member of this team")

    result = await db.execute(
        select(TeamMember).options(selectinload(TeamMember.user)).where(TeamMember.id == member.id)
    )
    return _member_response(result.scalar_one())


@router.delete("/{team_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    team_id: int,
    user_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    member = result.scalar_one_or_none()
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    await db.delete(member)
    await db.commit()
