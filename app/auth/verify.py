"""
verify.py
---------
Purpose:
    Bearer token verification for the booking API.

Notes:
    - Tokens are issued by the users service and signed with JWT_SECRET.
    - `sub` carries the user id, `role` is "user" or "admin".
    - Provides `auth_dependency` for protected routes and `admin_dependency`
      for admin-only ones.
"""

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings

_security = HTTPBearer()


def verify_jwt(token: str) -> dict:
    try:
        decoded = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": True, "require": ["sub"]},
        )
        return decoded
    except jwt.PyJWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_security)) -> dict:
    token = credentials.credentials
    return verify_jwt(token)


def admin_dependency(claims: dict = Depends(auth_dependency)) -> dict:
    if claims.get("role") != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return claims


def require_owner_or_admin(claims: dict, owner_id: str, resource: str = "booking") -> None:
    """403 unless the caller owns the resource or is an admin."""
    if claims.get("role") != "admin" and claims.get("sub") != owner_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Not your {resource}")
