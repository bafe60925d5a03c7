from typing import List

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from edusync.analytics.aggregator import (
    get_assessment_results, get_enrollment_analytics, get_instructor_analytics,
)
from edusync.analytics.models import AssessmentResultRow, CourseEnrollmentAnalytics, InstructorAnalytics
from edusync.assessments.service import require_assessment, verify_course_ownership
from edusync.auth.permissions import UserContext, ensure_self, require_instructor
from edusync.db import get_db

router = APIRouter(prefix="/instructors", tags=["Instructor Analytics"])


@router.get("/{instructor_id}/analytics", response_model=InstructorAnalytics)
async def instructor_analytics(
    instructor_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: UserContext = Depends(require_instructor),
):
    """
    Overall, per-assessment and per-course performance across the instructor's courses
    """
    ensure_self(instructor, instructor_id)
    return await get_instructor_analytics(db, instructor_id)


@router.get("/{instructor_id}/assessments/{assessment_id}/results", response_model=List[AssessmentResultRow])
async def assessment_results(
    instructor_id: str,
    assessment_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: UserContext = Depends(require_instructor),
):
    """
    Every attempt on one assessment, newest first
    """
    ensure_self(instructor, instructor_id)
    assessment = await require_assessment(db, assessment_id)
    await verify_course_ownership(db, assessment.course_id, instructor)
    return await get_assessment_results(db, assessment)


@router.get("/{instructor_id}/enrollments", response_model=List[CourseEnrollmentAnalytics])
async def enrollment_analytics(
    instructor_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: UserContext = Depends(require_instructor),
):
    """
    Enrolled students and most recent enrollments per course
    """
    ensure_self(instructor, instructor_id)
    return await get_enrollment_analytics(db, instructor_id)
