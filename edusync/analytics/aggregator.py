"""
Instructor analytics

All aggregates are computed from the instructor's own courses, the
assessments in them and the results for those assessments. Missing or broken
upstream data (deleted assessment, unreadable questions, course without
assessments, no enrollments) degrades to zero contributions; nothing here
raises for a single bad record.

Definitions:
- avg_score       = mean score per assessment, 1 decimal for display
- avg_percentage  = percent(mean score, max_score) per assessment, from the exact mean
- average_score   = total score / total attempts across the instructor, 2 decimals
- completion_rate = percent(attempts, distinct students x assessments)
- per-course rate = percent(course attempts, course assessments x distinct students)
"""

import logging
from collections import defaultdict
from fractions import Fraction
from typing import Dict, List, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase

from edusync import config
from edusync.analytics.models import (
    AssessmentResultRow, AssessmentStats, CourseCompletion, CourseEnrollmentAnalytics,
    EnrolledStudent, InstructorAnalytics, OverallStats,
)
from edusync.assessments import codec
from edusync.assessments.database import list_assessments_by_courses
from edusync.assessments.grading import percent, round_half_up
from edusync.assessments.models import Assessment
from edusync.auth.users import User, get_users
from edusync.courses.database import list_courses_by_instructor, list_enrollments_by_courses
from edusync.courses.models import Course, CourseEnrollment
from edusync.results.database import find_results_by_assessment_ids
from edusync.results.models import Result

logger = logging.getLogger(__name__)

UNKNOWN_COURSE = "Unknown Course"
UNKNOWN_STUDENT = "Unknown Student"


def round_places(value, places: int) -> float:
    scale = 10 ** places
    return round_half_up(Fraction(value) * scale) / scale


def round_1dp(value) -> float:
    return round_places(value, 1)


def round_2dp(value) -> float:
    return round_places(value, 2)


def mean(total: int, count: int) -> Fraction:
    return Fraction(total, count) if count else Fraction(0)


def question_count(assessment: Assessment) -> int:
    return len(codec.safe_decode(assessment.questions, assessment.assessment_id))


def scoped_results(assessments: Sequence[Assessment], results: Sequence[Result]) -> List[Result]:
    """Drop results whose assessment is not (or no longer) in scope"""
    known = {a.assessment_id for a in assessments}
    kept = [r for r in results if r.assessment_id in known]
    dropped = len(results) - len(kept)
    if dropped:
        logger.warning("Ignoring %d result(s) for missing assessments", dropped)
    return kept

# ==================== PER ASSESSMENT ====================

def assessment_stats(
    assessment: Assessment,
    results: Sequence[Result],
    course_title: str = UNKNOWN_COURSE,
) -> AssessmentStats:
    """`results` may span assessments; only this assessment's rows count"""
    own = [r for r in results if r.assessment_id == assessment.assessment_id]
    total_attempts = len(own)
    avg = mean(sum(r.score for r in own), total_attempts)
    max_score = question_count(assessment)

    return AssessmentStats(
        assessment_id=assessment.assessment_id,
        title=assessment.title,
        course_id=assessment.course_id,
        course_title=course_title,
        total_attempts=total_attempts,
        avg_score=round_1dp(avg),
        max_score=max_score,
        avg_percentage=percent(avg, max_score),
    )


def detailed_results(
    assessment: Assessment,
    results: Sequence[Result],
    users_by_id: Dict[str, User],
) -> List[AssessmentResultRow]:
    """Every attempt on one assessment, newest first"""
    max_score = question_count(assessment)
    rows = []
    for r in results:
        if r.assessment_id != assessment.assessment_id:
            continue
        user = users_by_id.get(r.user_id)
        rows.append(AssessmentResultRow(
            result_id=r.result_id,
            student_id=r.user_id,
            student_name=user.name if user else UNKNOWN_STUDENT,
            score=r.score,
            max_score=max_score,
            percentage=percent(r.score, max_score),
            attempt_date=r.attempt_date,
        ))
    rows.sort(key=lambda row: (row.attempt_date, row.result_id), reverse=True)
    return rows

# ==================== OVERALL ====================

def distinct_students(enrollments: Sequence[CourseEnrollment]) -> int:
    return len({e.student_id for e in enrollments})


def overall_stats(
    assessments: Sequence[Assessment],
    results: Sequence[Result],
    enrollments: Sequence[CourseEnrollment],
) -> OverallStats:
    results = scoped_results(assessments, results)
    total_students = distinct_students(enrollments)
    attempts = len(results)

    return OverallStats(
        total_students=total_students,
        average_score=round_2dp(mean(sum(r.score for r in results), attempts)),
        completion_rate=percent(attempts, total_students * len(assessments)),
        assessments_taken=attempts,
    )


def course_completion(
    course: Course,
    assessments: Sequence[Assessment],
    results: Sequence[Result],
    total_students: int,
) -> CourseCompletion:
    course_assessments = {a.assessment_id for a in assessments if a.course_id == course.course_id}
    attempts = sum(1 for r in results if r.assessment_id in course_assessments)

    return CourseCompletion(
        course_id=course.course_id,
        course_title=course.title,
        assessment_count=len(course_assessments),
        total_attempts=attempts,
        completion_rate=percent(attempts, len(course_assessments) * total_students),
    )


def build_instructor_analytics(
    courses: Sequence[Course],
    assessments: Sequence[Assessment],
    results: Sequence[Result],
    enrollments: Sequence[CourseEnrollment],
) -> InstructorAnalytics:
    course_ids = {c.course_id for c in courses}
    assessments = [a for a in assessments if a.course_id in course_ids]
    enrollments = [e for e in enrollments if e.course_id in course_ids]
    results = scoped_results(assessments, results)

    titles = {c.course_id: c.title for c in courses}
    overall = overall_stats(assessments, results, enrollments)

    per_results = defaultdict(list)
    for r in results:
        per_results[r.assessment_id].append(r)

    return InstructorAnalytics(
        overall=overall,
        per_assessment=[
            assessment_stats(a, per_results[a.assessment_id], titles.get(a.course_id, UNKNOWN_COURSE))
            for a in assessments
        ],
        per_course=[
            course_completion(c, assessments, results, overall.total_students)
            for c in courses
        ],
    )

# ==================== ENROLLMENTS ====================

def enrollment_analytics(
    courses: Sequence[Course],
    enrollments: Sequence[CourseEnrollment],
    users_by_id: Dict[str, User],
    recent_limit: int = config.RECENT_ENROLLMENTS_LIMIT,
) -> List[CourseEnrollmentAnalytics]:
    by_course = defaultdict(list)
    for e in enrollments:
        user = users_by_id.get(e.student_id)
        by_course[e.course_id].append(EnrolledStudent(
            student_id=e.student_id,
            student_name=user.name if user else UNKNOWN_STUDENT,
            enrollment_date=e.enrollment_date,
        ))

    analytics = []
    for course in courses:
        students = sorted(by_course.get(course.course_id, []),
                          key=lambda s: s.enrollment_date, reverse=True)
        analytics.append(CourseEnrollmentAnalytics(
            course_id=course.course_id,
            course_title=course.title,
            total_enrollments=len(students),
            enrolled_students=students,
            recent_enrollments=students[:recent_limit],
        ))
    return analytics

# ==================== LOADERS ====================

async def get_instructor_analytics(db: AsyncIOMotorDatabase, instructor_id: str) -> InstructorAnalytics:
    courses = await list_courses_by_instructor(db, instructor_id)
    course_ids = [c.course_id for c in courses]
    assessments = await list_assessments_by_courses(db, course_ids)
    results = await find_results_by_assessment_ids(db, (a.assessment_id for a in assessments))
    enrollments = await list_enrollments_by_courses(db, course_ids)

    analytics = build_instructor_analytics(courses, assessments, results, enrollments)
    logger.info("Analytics for %s: %d course(s), %d assessment(s), %d attempt(s)",
                instructor_id, len(courses), len(assessments), analytics.overall.assessments_taken)
    return analytics


async def get_enrollment_analytics(db: AsyncIOMotorDatabase, instructor_id: str) -> List[CourseEnrollmentAnalytics]:
    courses = await list_courses_by_instructor(db, instructor_id)
    enrollments = await list_enrollments_by_courses(db, (c.course_id for c in courses))
    users = await get_users(db, (e.student_id for e in enrollments))
    return enrollment_analytics(courses, enrollments, users)


async def get_assessment_results(
    db: AsyncIOMotorDatabase,
    assessment: Assessment,
) -> List[AssessmentResultRow]:
    results = await find_results_by_assessment_ids(db, [assessment.assessment_id])
    users = await get_users(db, (r.user_id for r in results))
    return detailed_results(assessment, results, users)
