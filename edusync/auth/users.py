from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field


class Role(str, Enum):
    STUDENT = "Student"
    INSTRUCTOR = "Instructor"


class User(BaseModel):
    user_id: str
    name: str
    email: Optional[str] = None
    role: Role
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ==================== USER DIRECTORY ====================

async def get_user(db: AsyncIOMotorDatabase, user_id: str) -> Optional[User]:
    """Get user by ID"""
    doc = await db.users.find_one({"user_id": user_id})
    if not doc:
        return None
    doc.pop("_id", None)
    return User(**doc)


async def get_users(db: AsyncIOMotorDatabase, user_ids: Iterable[str]) -> Dict[str, User]:
    """Batch lookup, keyed by user_id. Unknown ids are simply absent."""
    ids = list(set(user_ids))
    if not ids:
        return {}
    docs = await db.users.find({"user_id": {"$in": ids}}).to_list(length=None)
    users = {}
    for doc in docs:
        doc.pop("_id", None)
        users[doc["user_id"]] = User(**doc)
    return users


async def create_user(db: AsyncIOMotorDatabase, user: User) -> User:
    await db.users.insert_one(user.model_dump())
    return user
