"""User management routes (admin only)."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from qa_center.auth.dependencies import require_admin
from qa_center.auth.permissions import admin_permissions, empty_permissions, normalize_permissions, AVAILABLE_MODULES
from qa_center.auth.schemas import UserCreate, UserUpdate, UserResponse
from qa_center.core.database import get_db
from qa_center.core.security import get_password_hash
from qa_center.models.user import User


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _initial_permissions(is_agent: bool, requested: Optional[dict]) -> dict:
    if requested is not None:
        return normalize_permissions(requested)
    return empty_permissions() if is_agent else admin_permissions()


async def _get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


# ============================================================================
# Listing
# ============================================================================

@router.get("", response_model=list[UserResponse])
async def list_users(
    search: Optional[str] = Query(None, description="Match username, email or name"),
    is_agent: Optional[bool] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """List users ordered by username."""
    query = select(User)
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                User.username.ilike(pattern),
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            )
        )
    if is_agent is not None:
        query = query.where(User.is_agent.is_(is_agent))

    result = await db.execute(query.order_by(User.username).offset(skip).limit(limit))
    return result.scalars().all()


@router.get("/permissions/modules")
async def list_permission_modules(current_user: User = Depends(require_admin)):
    """Permission modules and their actions."""
    return AVAILABLE_MODULES


# ============================================================================
# Single user
# ============================================================================

@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a user. Admins start with every permission, agents with none."""
    existing = await db.execute(
        select(User).where(or_(User.username == payload.username, User.email == payload.email))
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username or email already exists")

    user = User(
        username=payload.username,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        is_agent=payload.is_agent,
        agent_id=payload.agent_id if payload.is_agent else None,
    )
    user.permissions = _initial_permissions(payload.is_agent, payload.permissions)

    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info(f"User created: {user.username} by {current_user.username}")
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await _get_user(db, user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    payload: UserUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await _get_user(db, user_id)
    data = payload.model_dump(exclude_unset=True)

    if "email" in data and data["email"] != user.email:
        clash = await db.execute(select(User).where(User.email == data["email"], User.id != user.id))
        if clash.scalar_one_or_none():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
        user.email = data["email"]

    if data.get("password"):
        user.hashed_password = get_password_hash(data["password"])
    for field in ("first_name", "last_name", "agent_id"):
        if field in data:
            setattr(user, field, data[field])
    if data.get("is_agent") is not None:
        user.is_agent = data["is_agent"]
    if data.get("is_active") is not None:
        if user.id == current_user.id and not data["is_active"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot deactivate yourself")
        user.is_active = data["is_active"]
    if data.get("permissions") is not None:
        user.permissions = normalize_permissions(data["permissions"])

    await db.commit()
    await db.refresh(user)
    return user
