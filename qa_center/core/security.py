"""Password hashing and bearer tokens for console users."""
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
import uuid
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status
from qa_center.core.config import settings


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN = "access"


def _credentials_error(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a console session token.

    ``sub`` holds the user id and is written as a string; every token gets a
    unique ``jti`` so two logins in the same second still differ.
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {
        **data,
        "jti": data.get("jti") or uuid.uuid4().hex,
        "exp": datetime.utcnow() + lifetime,
        "type": ACCESS_TOKEN,
    }
    if "sub" in claims:
        claims["sub"] = str(claims["sub"])
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Verify a token's signature and expiry and return its claims.

    A numeric ``sub`` is returned as an int user id.

    Raises:
        HTTPException: 401 when the token is expired, tampered or malformed
    """
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise _credentials_error("Could not validate credentials")

    subject = claims.get("sub")
    if isinstance(subject, str) and subject.isdigit():
        claims["sub"] = int(subject)
    return claims


def verify_token_type(payload: Dict[str, Any], expected_type: str) -> None:
    token_type = payload.get("type")
    if token_type != expected_type:
        raise _credentials_error(f"Invalid token type. Expected {expected_type}, got {token_type}")
