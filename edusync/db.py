"""
Database Session Management
MongoDB connection lifecycle and startup indexes
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from edusync import config

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages MongoDB connection lifecycle"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    def connect(self, mongo_url: str = None, db_name: str = None):
        """Initialize MongoDB connection"""
        mongo_url = mongo_url or config.MONGO_URL
        if not mongo_url:
            raise RuntimeError("MONGO_URL environment variable required")

        self.client = AsyncIOMotorClient(mongo_url, tz_aware=True)
        self.db = self.client[db_name or config.DB_NAME]
        logger.info("MongoDB connected (database=%s)", self.db.name)

    def disconnect(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB disconnected")

    def get_database(self) -> AsyncIOMotorDatabase:
        """Get database instance for dependency injection"""
        if self.db is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self.db


# Global database manager
db_manager = DatabaseManager()


async def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency for database access"""
    return db_manager.get_database()


# ==================== DATABASE INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create MongoDB indexes, called on startup"""

    # Users
    await db.users.create_index("user_id", unique=True)
    await db.users.create_index("role")

    # Courses
    await db.courses.create_index("course_id", unique=True)
    await db.courses.create_index("instructor_id")

    # Enrollments (one per student/course pair)
    await db.course_enrollments.create_index("enrollment_id", unique=True)
    await db.course_enrollments.create_index([("student_id", 1), ("course_id", 1)], unique=True)
    await db.course_enrollments.create_index([("course_id", 1), ("enrollment_date", -1)])

    # Assessments
    await db.assessments.create_index("assessment_id", unique=True)
    await db.assessments.create_index("course_id")

    # Results (attempt records)
    await db.results.create_index("result_id", unique=True)
    await db.results.create_index([("user_id", 1), ("attempt_date", -1)])
    await db.results.create_index("assessment_id")
    await db.results.create_index(
        [("user_id", 1), ("submission_token", 1)],
        unique=True,
        partialFilterExpression={"submission_token": {"$type": "string"}},
    )

    logger.info("EduSync indexes created")


def generate_id(prefix: str) -> str:
    """Generate unique ID with prefix"""
    return f"{prefix}_{uuid.uuid4().hex[:12].upper()}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
