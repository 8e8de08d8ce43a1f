"""
core/security.py
----------------
Shared-password gate and JWT token utilities.

Design decisions:
  - There are no accounts. Two static passwords exist: BOARD_PASSWORD
    (role 'member') and ADMIN_PASSWORD (role 'admin').
  - Passwords are compared in constant time.
  - The JWT 'sub' claim is a freshly generated session token. Clients reuse
    it as the dedup key for likes; the server never binds it to an identity.
  - Tokens are signed with HS256.
"""

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum as PyEnum
from typing import Any, Dict, Optional

from jose import jwt

from msgboard.core.config import settings


class Role(str, PyEnum):
    admin = "admin"
    member = "member"


# ── Password Utilities ────────────────────────────────────────────────────────

def _matches(plain: str, expected: str) -> bool:
    return secrets.compare_digest(plain.encode("utf-8"), expected.encode("utf-8"))


def resolve_role(password: str) -> Optional[Role]:
    """Return the role granted by a shared password, or None if it matches neither."""
    if _matches(password, settings.ADMIN_PASSWORD):
        return Role.admin
    if _matches(password, settings.BOARD_PASSWORD):
        return Role.member
    return None


def new_session_token() -> str:
    return uuid.uuid4().hex


# ── JWT Utilities ─────────────────────────────────────────────────────────────

def create_access_token(
    subject: str,
    role: Role,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Mint a JWT access token.

    Args:
        subject: Session token (stored in 'sub' claim).
        role: 'admin' | 'member'
        expires_delta: Optional custom expiry; defaults to settings value.
    """
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload: Dict[str, Any] = {
        "sub": subject,
        "role": role.value,
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Raises:
        JWTError: If the token is invalid, expired, or tampered with.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
