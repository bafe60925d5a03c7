import logging

from jose import jwt, JWTError
from fastapi import Header

from edusync import config
from edusync.errors import Unauthorized

logger = logging.getLogger(__name__)


def require_secret() -> str:
    """The signing secret, or RuntimeError when none is configured"""
    if not config.JWT_SECRET_KEY:
        raise RuntimeError("JWT_SECRET_KEY environment variable required")
    return config.JWT_SECRET_KEY


def decode_token(token: str) -> dict:
    """Decode and verify an HS256 bearer token, checking signature and expiry"""
    if not config.JWT_SECRET_KEY:
        logger.error("Rejecting token: JWT_SECRET_KEY is not configured")
        raise Unauthorized("Invalid or Expired Token")
    try:
        return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise Unauthorized("Invalid or Expired Token")


def create_token(user_id: str, role: str, expires_at=None) -> str:
    """Issue a token for a user (used by tooling and tests)"""
    claims = {"sub": user_id, "role": role}
    if expires_at is not None:
        claims["exp"] = expires_at
    return jwt.encode(claims, require_secret(), algorithm=config.JWT_ALGORITHM)


def extract_bearer(authorization: str) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Unauthorized")
    return authorization.split(" ", 1)[1]


def verify_token(authorization: str = Header(None)) -> dict:
    """Dependency: returns the decoded token payload"""
    return decode_token(extract_bearer(authorization))
