"""API Dependencies"""

from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from uuid import UUID

from app.database import get_db  # noqa: F401
from app.core.security import decode_token
from app.models.enums import UserRole
from app.schemas.principal import Principal

# Security scheme for bearer token
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Principal:
    """
    Turn the bearer token issued by the identity service into a Principal.

    Only the token is trusted here; profile resolution happens inside each
    operation against the directory.

    Raises:
        HTTPException: 401 if the token is missing, invalid or malformed
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = decode_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Could not validate credentials")

    # Check token type
    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type")

    account_id: Optional[str] = payload.get("sub")
    role: Optional[str] = payload.get("role")
    if not account_id or not role:
        raise _unauthorized("Could not validate credentials")

    try:
        principal = Principal(account_id=UUID(account_id), role=UserRole(role))
    except ValueError:
        raise _unauthorized("Invalid token claims")

    request.state.principal_role = principal.role.value
    return principal
