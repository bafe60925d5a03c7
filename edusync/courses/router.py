from typing import List

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from edusync.auth.permissions import UserContext, require_instructor, require_student
from edusync.courses import database
from edusync.courses.models import Course, CourseCreate, EnrollmentResponse
from edusync.db import get_db
from edusync.errors import NotFound

router = APIRouter(prefix="/courses", tags=["Courses"])


@router.post("", response_model=Course, status_code=201)
async def create_course(
    data: CourseCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: UserContext = Depends(require_instructor),
):
    return await database.create_course(db, data.model_dump(), instructor.user_id)


@router.get("/mine", response_model=List[Course])
async def my_courses(
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: UserContext = Depends(require_instructor),
):
    """Courses owned by the calling instructor, newest first"""
    return await database.list_courses_by_instructor(db, instructor.user_id)

# ==================== ENROLLMENT ====================

@router.post("/{course_id}/enroll", response_model=EnrollmentResponse, status_code=201)
async def enroll(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    student: UserContext = Depends(require_student),
):
    """
    Enroll in a course. Enrolling twice returns the existing enrollment.
    """
    course = await database.get_course(db, course_id)
    if not course:
        raise NotFound("Course not found")

    enrollment = await database.enroll_student(db, course_id, student.user_id)
    return EnrollmentResponse(
        enrollment_id=enrollment.enrollment_id,
        course_id=course_id,
        course_title=course.title,
        enrollment_date=enrollment.enrollment_date,
    )


@router.get("/enrollments/me", response_model=List[EnrollmentResponse])
async def my_enrollments(
    db: AsyncIOMotorDatabase = Depends(get_db),
    student: UserContext = Depends(require_student),
):
    enrollments = await database.list_enrollments_by_student(db, student.user_id)
    courses = await database.get_courses(db, (e.course_id for e in enrollments))
    return [
        EnrollmentResponse(
            enrollment_id=e.enrollment_id,
            course_id=e.course_id,
            course_title=courses[e.course_id].title if e.course_id in courses else None,
            enrollment_date=e.enrollment_date,
        )
        for e in enrollments
    ]
