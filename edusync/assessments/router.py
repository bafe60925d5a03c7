from typing import List, Union

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from edusync.assessments import service
from edusync.assessments.models import (
    AssessmentAuthorView, AssessmentCreate, AssessmentDetail, AssessmentSummary,
    AssessmentUpdate, AttemptRequest, AttemptResponse,
)
from edusync.auth.permissions import UserContext, get_current_user, require_instructor, require_student
from edusync.db import get_db

router = APIRouter(prefix="/assessments", tags=["Assessments"])

# ==================== AUTHORING ====================

@router.post("", response_model=AssessmentSummary, status_code=201)
async def create_assessment(
    data: AssessmentCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: UserContext = Depends(require_instructor),
):
    """
    Create an assessment in one of the instructor's courses
    """
    assessment = await service.create_assessment(db, instructor, data.title, data.course_id, data.questions)
    return service.to_summary(assessment)


@router.put("/{assessment_id}", response_model=AssessmentSummary)
async def update_assessment(
    assessment_id: str,
    data: AssessmentUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: UserContext = Depends(require_instructor),
):
    """
    Update title, course or questions. Questions lock after the first attempt.
    """
    assessment = await service.update_assessment(
        db, instructor, assessment_id,
        title=data.title,
        course_id=data.course_id,
        questions=data.questions,
    )
    return service.to_summary(assessment)

# ==================== VIEWING ====================

@router.get("", response_model=List[AssessmentSummary])
async def list_assessments(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: UserContext = Depends(get_current_user),
):
    return await service.list_visible_assessments(db, user)


@router.get("/{assessment_id}", response_model=None)
async def get_assessment(
    assessment_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> Union[AssessmentAuthorView, AssessmentDetail]:
    """
    Owner sees the answer key; enrolled students see questions and options only
    """
    return await service.get_assessment_for_user(db, user, assessment_id)

# ==================== ATTEMPTS ====================

@router.post("/{assessment_id}/attempt", response_model=AttemptResponse, status_code=201)
async def attempt_assessment(
    assessment_id: str,
    data: AttemptRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    student: UserContext = Depends(require_student),
):
    """
    Submit one answer per question, in question order
    """
    return await service.grade_submission(
        db, assessment_id, student.user_id, data.selected_answers, data.submission_token
    )
