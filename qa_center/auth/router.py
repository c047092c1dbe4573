"""Authentication router."""
from datetime import datetime
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from qa_center.auth.dependencies import get_current_active_user
from qa_center.auth.schemas import UserLogin, Token, UserResponse
from qa_center.core.database import get_db
from qa_center.core.security import verify_password, create_access_token
from qa_center.models.user import User


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=Token)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db),
) -> Token:
    """
    Login with username (or email) and password.

    Raises:
        HTTPException: 401 on bad credentials, 403 for inactive accounts
    """
    result = await db.execute(
        select(User).where(
            or_(User.username == credentials.username, User.email == credentials.username)
        )
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    user.last_login_at = datetime.utcnow()
    await db.commit()

    logger.info(f"User logged in: {user.username} (admin={user.is_admin})")
    return Token(access_token=create_access_token(data={"sub": user.id}))


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_active_user)) -> User:
    """Return the authenticated user with its permissions."""
    return current_user
