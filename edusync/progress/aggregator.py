"""
Student progress history

`build_history` is a pure function of the student's results and whatever
assessment/course metadata still exists, so it can be recomputed at any time.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from edusync.assessments import codec
from edusync.assessments.database import get_assessments
from edusync.assessments.grading import percent
from edusync.assessments.models import Assessment
from edusync.courses.database import get_courses
from edusync.courses.models import Course
from edusync.results.database import find_results_by_user
from edusync.results.models import Result

logger = logging.getLogger(__name__)

UNKNOWN_ASSESSMENT = "Unknown Assessment"
UNKNOWN_COURSE = "Unknown Course"


class AttemptSummary(BaseModel):
    attempt_id: str
    assessment_id: str
    assessment_title: str
    course_title: str
    score: int
    max_score: int
    percentage: int
    attempt_date: datetime


def summarize(result: Result, assessment: Optional[Assessment], course: Optional[Course]) -> AttemptSummary:
    max_score = 0
    if assessment is not None:
        max_score = len(codec.safe_decode(assessment.questions, assessment.assessment_id))

    return AttemptSummary(
        attempt_id=result.result_id,
        assessment_id=result.assessment_id,
        assessment_title=assessment.title if assessment else UNKNOWN_ASSESSMENT,
        course_title=course.title if course else UNKNOWN_COURSE,
        score=result.score,
        max_score=max_score,
        percentage=percent(result.score, max_score),
        attempt_date=result.attempt_date,
    )


def build_history(
    results: Sequence[Result],
    assessments_by_id: Dict[str, Assessment],
    courses_by_id: Dict[str, Course],
) -> List[AttemptSummary]:
    """Newest attempt first; one broken reference never fails the list"""
    history = []
    for result in results:
        assessment = assessments_by_id.get(result.assessment_id)
        if assessment is None:
            logger.warning("Result %s references missing assessment %s", result.result_id, result.assessment_id)
        course = courses_by_id.get(assessment.course_id) if assessment else None
        history.append(summarize(result, assessment, course))

    history.sort(key=lambda s: (s.attempt_date, s.attempt_id), reverse=True)
    return history


async def get_student_history(db: AsyncIOMotorDatabase, student_id: str) -> List[AttemptSummary]:
    results = await find_results_by_user(db, student_id)
    assessments = await get_assessments(db, (r.assessment_id for r in results))
    courses = await get_courses(db, (a.course_id for a in assessments.values()))
    return build_history(results, assessments, courses)
