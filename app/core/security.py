"""
Password hashing and access tokens.

Passwords are stored as bcrypt hashes; access tokens are HS256 JWTs
carrying the user id.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from app.core.config import get_settings

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash a plain-text password with the configured bcrypt cost."""
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash stored in the database
        logger.warning("Password check against malformed hash")
        return False


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Issue a signed access token for a user.

    Args:
        user_id: Subject of the token
        expires_delta: Lifetime; defaults to JWT_EXPIRE_DAYS

    Returns:
        Encoded JWT string
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.jwt_expire_days))
    payload = {"user_id": user_id, "iat": now, "exp": expire}
    return jwt.encode(payload, settings.signing_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """
    Decode and validate a token.

    Raises:
        jwt.ExpiredSignatureError: Token lifetime is over
        jwt.InvalidTokenError: Signature or payload is invalid
    """
    settings = get_settings()
    payload = jwt.decode(token, settings.signing_secret, algorithms=[settings.jwt_algorithm])
    if "user_id" not in payload:
        raise jwt.InvalidTokenError("Token has no user_id claim")
    return payload
