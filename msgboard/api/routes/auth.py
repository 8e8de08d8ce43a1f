"""
api/routes/auth.py
------------------
Shared-password gate.

POST /auth/login — Exchange the board (or admin) password for a JWT and a
                   fresh session token.

There are no accounts. The session token doubles as the JWT subject and is
what the client sends back as `sessionToken` when liking.
"""

from datetime import timedelta

from fastapi import APIRouter, HTTPException, status

from msgboard.core.config import settings
from msgboard.core.logging import get_logger
from msgboard.core.security import create_access_token, new_session_token, resolve_role
from msgboard.schemas.auth import LoginRequest, TokenResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Enter the board password and receive a token",
)
async def login(body: LoginRequest) -> TokenResponse:
    role = resolve_role(body.password)
    if role is None:
        logger.info("Login rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    session_token = new_session_token()
    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = create_access_token(subject=session_token, role=role, expires_delta=expires)
    logger.info("Login accepted", role=role.value)

    return TokenResponse(
        access_token=token,
        expires_in=int(expires.total_seconds()),
        session_token=session_token,
        role=role,
    )
