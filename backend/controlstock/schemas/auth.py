"""
Auth schemas
"""
from pydantic import BaseModel
from typing import List

from controlstock.schemas.user import UserResponse


class LoginRequest(BaseModel):
    username: str
    password: str


class SessionInfo(BaseModel):
    """Current user, role display name and the capabilities the client may show"""
    user: UserResponse
    role_display_name: str
    capabilities: List[str]
    inactivity_timeout_seconds: float


class TokenResponse(SessionInfo):
    access_token: str
    token_type: str = "bearer"
