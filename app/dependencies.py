"""
FastAPI dependencies for authentication and role checks.

Usage:
    @router.get("/example")
    async def example(user: User = Depends(require_roles(Role.ADMIN))):
        ...
"""

import logging
from typing import Callable, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenError, UnauthorizedError
from app.core.security import decode_access_token
from app.database import get_db
from app.models import Role, User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def resolve_token_user(db: AsyncSession, token: str) -> User:
    """
    Map a bearer token to an active user.

    Raises:
        UnauthorizedError: Invalid or expired token, unknown or inactive user
    """
    try:
        payload = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token")

    user = await db.get(User, payload["user_id"])
    if user is None or not user.is_active:
        raise UnauthorizedError("User not found or inactive")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("No token provided")
    return await resolve_token_user(db, credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous or broken tokens yield None."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        return await resolve_token_user(db, credentials.credentials)
    except UnauthorizedError as e:
        logger.debug(f"Ignoring optional auth failure: {e.message}")
        return None


def require_roles(*roles: Role) -> Callable:
    """Build a dependency that admits only users holding one of ``roles``."""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise ForbiddenError("Insufficient permissions")
        return user

    return checker
