"""Principal token utilities.

Tokens are issued by the identity service; this module only needs to
read them. create_access_token exists for tooling and tests.
"""

from datetime import timedelta
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt

from app.config import settings
from app.models.enums import UserRole
from app.utils.time import get_utc_now


def create_access_token(account_id: UUID, role: UserRole, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token for an account.

    Args:
        account_id: Account (users.id) the token represents
        role: Role claim carried with the token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token
    """
    if expires_delta:
        expire = get_utc_now() + expires_delta
    else:
        expire = get_utc_now() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(account_id),
        "role": role.value,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token to decode

    Returns:
        Decoded token payload or None if invalid
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        return None
