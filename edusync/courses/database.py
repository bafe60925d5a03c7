import logging
from typing import Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from edusync.courses.models import Course, CourseEnrollment
from edusync.db import generate_id

logger = logging.getLogger(__name__)


def _strip(doc: dict) -> dict:
    doc.pop("_id", None)
    return doc

# ==================== COURSE CRUD ====================

async def create_course(db: AsyncIOMotorDatabase, course_data: dict, instructor_id: str) -> Course:
    """Create new course owned by the instructor"""
    course = Course(
        course_id=generate_id("CRS"),
        title=course_data["title"],
        description=course_data.get("description", ""),
        instructor_id=instructor_id,
    )
    await db.courses.insert_one(course.model_dump())
    logger.info("Course %s created by %s", course.course_id, instructor_id)
    return course


async def get_course(db: AsyncIOMotorDatabase, course_id: str) -> Optional[Course]:
    """Get course by ID"""
    doc = await db.courses.find_one({"course_id": course_id})
    return Course(**_strip(doc)) if doc else None


async def list_courses_by_instructor(db: AsyncIOMotorDatabase, instructor_id: str) -> List[Course]:
    cursor = db.courses.find({"instructor_id": instructor_id}).sort("created_at", -1)
    return [Course(**_strip(doc)) for doc in await cursor.to_list(length=None)]


async def get_courses(db: AsyncIOMotorDatabase, course_ids: Iterable[str]) -> Dict[str, Course]:
    """Batch lookup keyed by course_id"""
    ids = list(set(course_ids))
    if not ids:
        return {}
    docs = await db.courses.find({"course_id": {"$in": ids}}).to_list(length=None)
    return {doc["course_id"]: Course(**_strip(doc)) for doc in docs}

# ==================== ENROLLMENT CRUD ====================

async def enroll_student(db: AsyncIOMotorDatabase, course_id: str, student_id: str) -> CourseEnrollment:
    """Enroll student in course. Re-enrolling returns the existing enrollment."""
    existing = await get_enrollment(db, course_id, student_id)
    if existing:
        return existing

    enrollment = CourseEnrollment(
        enrollment_id=generate_id("ENR"),
        student_id=student_id,
        course_id=course_id,
    )
    try:
        await db.course_enrollments.insert_one(enrollment.model_dump())
    except DuplicateKeyError:
        # lost a race against a concurrent enroll for the same pair
        return await get_enrollment(db, course_id, student_id)

    logger.info("Student %s enrolled in %s", student_id, course_id)
    return enrollment


async def get_enrollment(db: AsyncIOMotorDatabase, course_id: str, student_id: str) -> Optional[CourseEnrollment]:
    doc = await db.course_enrollments.find_one({"course_id": course_id, "student_id": student_id})
    return CourseEnrollment(**_strip(doc)) if doc else None


async def list_enrollments_by_student(db: AsyncIOMotorDatabase, student_id: str) -> List[CourseEnrollment]:
    cursor = db.course_enrollments.find({"student_id": student_id}).sort("enrollment_date", -1)
    return [CourseEnrollment(**_strip(doc)) for doc in await cursor.to_list(length=None)]


async def list_enrollments_by_course(db: AsyncIOMotorDatabase, course_id: str) -> List[CourseEnrollment]:
    cursor = db.course_enrollments.find({"course_id": course_id}).sort("enrollment_date", -1)
    return [CourseEnrollment(**_strip(doc)) for doc in await cursor.to_list(length=None)]


async def list_enrollments_by_courses(db: AsyncIOMotorDatabase, course_ids: Iterable[str]) -> List[CourseEnrollment]:
    ids = list(set(course_ids))
    if not ids:
        return []
    cursor = db.course_enrollments.find({"course_id": {"$in": ids}}).sort("enrollment_date", -1)
    return [CourseEnrollment(**_strip(doc)) for doc in await cursor.to_list(length=None)]
