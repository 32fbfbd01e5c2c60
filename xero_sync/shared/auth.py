# xero_sync/shared/auth.py
from typing import Callable, Literal, Optional

import jwt
from fastapi import Depends, Header
from pydantic import BaseModel, Field, ValidationError

from xero_sync.core.settings import settings
from xero_sync.shared.exceptions import InvalidTokenError, NotAuthorizedError

Role = Literal["admin", "service"]


class CallerJwtPayload(BaseModel):
    """Bearer token payload for admin and platform callers."""

    sub: Optional[str] = Field(None, description="Subject (user or service ID)")
    exp: Optional[int] = Field(None, description="Expiration timestamp")
    iat: Optional[int] = Field(None, description="Issued at timestamp")
    role: Optional[str] = Field(None, description="Caller role")

    model_config = {"extra": "allow"}


def decode_caller_jwt(token: str) -> CallerJwtPayload:
    """
    Verifies an HS256 bearer token signed with JWT_SECRET.
    """
    if not settings.JWT_SECRET:
        raise InvalidTokenError("Authentication is not configured")
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=["HS256"],
            options={"verify_aud": False},
        )
        return CallerJwtPayload(**dict(payload))
    except (jwt.PyJWTError, ValidationError):
        raise InvalidTokenError("Invalid or expired token")


def get_caller(authorization: str = Header(None)) -> CallerJwtPayload:
    """
    Extracts and validates the JWT from the Authorization header.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise InvalidTokenError("Missing token")

    token = authorization.split(" ", 1)[1]
    return decode_caller_jwt(token)


def require_role(*roles: Role) -> Callable[..., CallerJwtPayload]:
    """
    Dependency factory for role-based authorization.

    Args:
        roles: Roles allowed to call the endpoint

    Returns:
        Dependency that returns the caller's payload when authorized
    """

    def check_role(caller: CallerJwtPayload = Depends(get_caller)) -> CallerJwtPayload:
        if caller.role not in roles:
            raise NotAuthorizedError()
        return caller

    return check_role


require_admin = require_role("admin")
