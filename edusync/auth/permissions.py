from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from edusync.auth.auth_utils import verify_token
from edusync.auth.users import Role, User, get_user
from edusync.db import get_db
from edusync.errors import Forbidden, NotFound, Unauthorized


class UserContext:
    """
    Validated caller identity and role
    """
    def __init__(self, user: User):
        self.user_id = user.user_id
        self.name = user.name
        self.role = user.role
        self.user = user

    @property
    def is_instructor(self) -> bool:
        return self.role == Role.INSTRUCTOR

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT


async def get_current_user(
    payload: dict = Depends(verify_token),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> UserContext:
    """
    Dependency: resolves the token subject to a user profile

    Raises:
        401: Token without subject
        404: Profile not found
    """
    user_id = payload.get("sub")
    if not user_id:
        raise Unauthorized("Invalid token: missing user_id")

    user = await get_user(db, user_id)
    if not user:
        raise NotFound("Profile not found. Please complete registration first.")

    return UserContext(user)


async def require_instructor(user: UserContext = Depends(get_current_user)) -> UserContext:
    if not user.is_instructor:
        raise Forbidden("Access denied. Instructor privileges required.")
    return user


async def require_student(user: UserContext = Depends(get_current_user)) -> UserContext:
    if not user.is_student:
        raise Forbidden("Only students can attempt assessments.")
    return user


def ensure_self(user: UserContext, user_id: str):
    """Callers may only read their own history/analytics"""
    if user.user_id != user_id:
        raise Forbidden("Not authorized to view another user's data")
