"""
dependencies.py
---------------
FastAPI dependency injection functions.

Shared objects (BoardService, Broadcaster) are built once in the lifespan
hook and stored on app.state; handlers receive them through these
dependencies rather than importing module-level singletons.

Auth flow for admin-only routes:
  1. HTTPBearer extracts the Bearer token from the Authorization header.
  2. decode_access_token validates and parses the JWT (no DB round-trip).
  3. require_admin layers a role check on top of get_current_role.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from starlette.requests import HTTPConnection

from msgboard.core.config import settings
from msgboard.core.logging import get_logger
from msgboard.core.security import Role, decode_access_token
from msgboard.services.board_service import BoardService
from msgboard.services.broadcaster import Broadcaster

logger = get_logger(__name__)

bearer = HTTPBearer(auto_error=False, description="Token from POST /auth/login")

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


def get_board_service(request: Request) -> BoardService:
    return request.app.state.board_service


def get_broadcaster(connection: HTTPConnection) -> Broadcaster:
    return connection.app.state.broadcaster


def get_client_origin(request: Request) -> str:
    """Network origin of the caller; only ever used for moderation / rate limits."""
    if settings.TRUST_FORWARDED_FOR:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def get_current_role(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer)],
) -> Role:
    """Decode the JWT and return its role. Raises 401 if missing or invalid."""
    if credentials is None:
        raise _CREDENTIALS_EXCEPTION
    try:
        payload = decode_access_token(credentials.credentials)
        return Role(payload.get("role"))
    except (JWTError, ValueError) as exc:
        logger.warning("JWT decode failed", error=str(exc))
        raise _CREDENTIALS_EXCEPTION


async def require_admin(
    role: Annotated[Role, Depends(get_current_role)],
) -> Role:
    """Raises 403 if the caller's token does not carry the admin role."""
    if role is not Role.admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return role
