"""
Assessment authoring and submission

`grade_submission` is the one mutating entry point for students. The checks
run in a fixed order and nothing is stored unless all of them pass:
assessment exists -> student enrolled -> questions decode -> answer count
matches -> store result -> notify progress subscribers.
"""

import logging
from typing import List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from edusync.assessments import codec, database
from edusync.assessments.grading import grade, grade_status, percent
from edusync.assessments.models import (
    Assessment, AssessmentAuthorView, AssessmentDetail, AssessmentSummary,
    AttemptResponse, Question, QuestionView,
)
from edusync.auth.permissions import UserContext
from edusync.courses.database import (
    get_course, get_enrollment, list_courses_by_instructor, list_enrollments_by_student,
)
from edusync.errors import Forbidden, InvalidAssessment, NotFound
from edusync.progress.events import AssessmentCompleted, CompletionChannel, completion_channel
from edusync.results.database import create_result, find_result_by_token, has_results
from edusync.results.models import Result

logger = logging.getLogger(__name__)


def load_questions(assessment: Assessment) -> List[Question]:
    """
    Decode an assessment's questions for grading or display.
    Raises MalformedQuestionSet; the decoded count wins over the stored max_score.
    """
    questions = codec.decode(assessment.questions)
    if len(questions) != assessment.max_score:
        logger.warning(
            "Assessment %s stores max_score=%d but has %d questions",
            assessment.assessment_id, assessment.max_score, len(questions),
        )
    return questions


async def require_assessment(db: AsyncIOMotorDatabase, assessment_id: str) -> Assessment:
    assessment = await database.get_assessment(db, assessment_id)
    if not assessment:
        raise NotFound("Assessment not found")
    return assessment


async def verify_course_ownership(db: AsyncIOMotorDatabase, course_id: str, instructor: UserContext):
    course = await get_course(db, course_id)
    if not course:
        raise NotFound("Course not found")
    if course.instructor_id != instructor.user_id:
        raise Forbidden("Not authorized to manage this course")
    return course


async def verify_enrollment(db: AsyncIOMotorDatabase, course_id: str, student_id: str):
    enrollment = await get_enrollment(db, course_id, student_id)
    if not enrollment:
        raise Forbidden("You must be enrolled in this course to attempt the assessment.")
    return enrollment

# ==================== AUTHORING ====================

async def create_assessment(
    db: AsyncIOMotorDatabase,
    instructor: UserContext,
    title: str,
    course_id: str,
    questions: Sequence[Question],
) -> Assessment:
    await verify_course_ownership(db, course_id, instructor)
    return await database.create_assessment(db, title, course_id, questions)


async def update_assessment(
    db: AsyncIOMotorDatabase,
    instructor: UserContext,
    assessment_id: str,
    title: Optional[str] = None,
    course_id: Optional[str] = None,
    questions: Optional[Sequence[Question]] = None,
) -> Assessment:
    """
    Instructor edits an assessment.
    Once a student has attempted it, the question set is frozen.
    """
    assessment = await require_assessment(db, assessment_id)
    await verify_course_ownership(db, assessment.course_id, instructor)

    if course_id is not None and course_id != assessment.course_id:
        await verify_course_ownership(db, course_id, instructor)

    if title is not None and not title.strip():
        raise InvalidAssessment("Assessment title is required.")

    if questions is not None:
        if not questions:
            raise InvalidAssessment("An assessment needs at least one question.")
        if await has_results(db, assessment_id):
            raise InvalidAssessment("Questions cannot be changed after students have attempted this assessment.")

    return await database.update_assessment(
        db, assessment_id,
        title=title.strip() if title is not None else None,
        course_id=course_id,
        questions=questions,
    )

# ==================== VIEWING ====================

def to_summary(assessment: Assessment) -> AssessmentSummary:
    return AssessmentSummary(
        assessment_id=assessment.assessment_id,
        title=assessment.title,
        course_id=assessment.course_id,
        max_score=assessment.max_score,
    )


async def list_visible_assessments(db: AsyncIOMotorDatabase, user: UserContext) -> List[AssessmentSummary]:
    """Students see their enrolled courses' assessments, instructors their own"""
    if user.is_student:
        enrollments = await list_enrollments_by_student(db, user.user_id)
        course_ids = [e.course_id for e in enrollments]
    else:
        course_ids = [c.course_id for c in await list_courses_by_instructor(db, user.user_id)]

    assessments = await database.list_assessments_by_courses(db, course_ids)
    return [to_summary(a) for a in assessments]


async def get_assessment_for_user(db: AsyncIOMotorDatabase, user: UserContext, assessment_id: str):
    """Owner gets the answer key, an enrolled student gets questions only"""
    assessment = await require_assessment(db, assessment_id)

    if user.is_instructor:
        await verify_course_ownership(db, assessment.course_id, user)
        return AssessmentAuthorView(**to_summary(assessment).model_dump(), questions=load_questions(assessment))

    await verify_enrollment(db, assessment.course_id, user.user_id)
    questions = load_questions(assessment)
    return AssessmentDetail(
        **to_summary(assessment).model_dump(),
        questions=[QuestionView(text=q.text, options=list(q.options)) for q in questions],
    )

# ==================== SUBMISSION ====================

async def grade_submission(
    db: AsyncIOMotorDatabase,
    assessment_id: str,
    student_id: str,
    selected_answers: Sequence[int],
    submission_token: Optional[str] = None,
    channel: CompletionChannel = completion_channel,
) -> AttemptResponse:
    """
    Grade and record one attempt

    Raises:
        NotFound: assessment missing
        Forbidden: student not enrolled in the assessment's course
        MalformedQuestionSet: stored questions unreadable
        AnswerCountMismatch: wrong number of answers
    """
    assessment = await require_assessment(db, assessment_id)
    await verify_enrollment(db, assessment.course_id, student_id)

    questions = load_questions(assessment)

    if submission_token:
        previous = await find_result_by_token(db, student_id, submission_token)
        if previous is not None:
            return _replay(previous, assessment_id, questions)

    graded = grade(questions, selected_answers)

    try:
        result = await create_result(db, assessment_id, student_id, graded.score, submission_token)
    except DuplicateKeyError:
        # a concurrent request with the same token stored first
        previous = await find_result_by_token(db, student_id, submission_token)
        if previous is None:
            raise
        return _replay(previous, assessment_id, questions)

    logger.info("Graded %s for %s: %d/%d (%d%%) %s", assessment_id, student_id,
                graded.score, graded.max_score, graded.percentage, graded.status.value)

    await channel.publish(AssessmentCompleted(
        student_id=student_id,
        assessment_id=assessment_id,
        result_id=result.result_id,
        score=graded.score,
        percentage=graded.percentage,
        attempt_date=result.attempt_date,
    ))

    return AttemptResponse(
        **graded.model_dump(),
        result_id=result.result_id,
        assessment_id=assessment_id,
        attempt_date=result.attempt_date,
    )


def _replay(result: Result, assessment_id: str, questions: Sequence[Question]) -> AttemptResponse:
    """Answer a repeated submission token with the grade already on record"""
    if result.assessment_id != assessment_id:
        raise Forbidden("Submission token already used for another assessment")

    logger.info("Replaying result %s for repeated submission token", result.result_id)
    percentage = percent(result.score, len(questions))
    return AttemptResponse(
        score=result.score,
        max_score=len(questions),
        percentage=percentage,
        status=grade_status(percentage),
        result_id=result.result_id,
        assessment_id=result.assessment_id,
        attempt_date=result.attempt_date,
    )
