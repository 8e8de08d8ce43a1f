"""
schemas/auth.py
---------------
Shared-password login request / response.
"""

from pydantic import BaseModel, Field

from msgboard.core.security import Role


class LoginRequest(BaseModel):
    password: str = Field(..., min_length=1, max_length=256)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    session_token: str
    role: Role
