"""
User schemas
"""
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
from uuid import UUID

from controlstock.permission_config import ROLES


def _check_role(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    role = value.strip().lower()
    if role not in ROLES:
        raise ValueError(f"role must be one of: {', '.join(ROLES)}")
    return role


class UserBase(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    role: str

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username must not be blank")
        return v

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        return _check_role(v)


class UserCreate(UserBase):
    password: str = Field(..., min_length=1)
    is_active: bool = True


class UserUpdate(BaseModel):
    """Partial update; password changes go through the password endpoint"""
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    role: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: Optional[str]) -> Optional[str]:
        return _check_role(v)


class UserActivateRequest(BaseModel):
    is_active: bool


class PasswordChangeRequest(BaseModel):
    new_password: str


class UserResponse(BaseModel):
    id: UUID
    username: str
    email: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
