"""
Identity context for incoming requests.

Users sign in through an external identity provider that issues HS256
bearer tokens. The core only decodes them: ``sub`` carries the user id and
``role`` marks administrators.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from rehearsal.core.config import get_settings
from rehearsal.core.exceptions import PermissionDeniedError

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    user_id: int
    is_admin: bool = False

    def ensure_admin(self, action: str) -> None:
        if not self.is_admin:
            raise PermissionDeniedError(f"Only admins can {action}")

    def ensure_self_or_admin(self, user_id: int, action: str) -> None:
        if user_id != self.user_id and not self.is_admin:
            raise PermissionDeniedError(f"You can only {action} for yourself")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a token the way the identity provider does (tooling and tests)."""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_identity(token: str) -> Identity:
    settings = get_settings()
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id = int(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise credentials_exception
    return Identity(user_id=user_id, is_admin=payload.get("role") == settings.ADMIN_ROLE)


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_identity(credentials.credentials)
