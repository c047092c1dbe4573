"""Pydantic schemas for authentication and user management."""
from datetime import datetime
from typing import Optional, Dict
from pydantic import BaseModel, EmailStr, Field, field_validator


class UserLogin(BaseModel):
    """User login schema. ``username`` accepts either the username or the email."""
    username: str
    password: str


class Token(BaseModel):
    """Token response schema."""
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """User response schema."""
    id: int
    username: str
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    is_agent: bool
    is_admin: bool
    agent_id: Optional[str]
    is_active: bool
    permissions: Dict[str, Dict[str, bool]]
    created_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    """Admin-side user creation."""
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    is_agent: bool = True
    agent_id: Optional[str] = None
    permissions: Optional[Dict[str, Dict[str, bool]]] = None

    @field_validator("username")
    @classmethod
    def username_alphanumeric(cls, v):
        """Validate username is alphanumeric with underscores, dots or dashes."""
        if not v.replace("_", "").replace(".", "").replace("-", "").isalnum():
            raise ValueError("Username must be alphanumeric (underscores, dots and dashes allowed)")
        return v


class UserUpdate(BaseModel):
    """User update schema."""
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=100)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_agent: Optional[bool] = None
    agent_id: Optional[str] = None
    is_active: Optional[bool] = None
    permissions: Optional[Dict[str, Dict[str, bool]]] = None
