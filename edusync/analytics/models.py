from datetime import datetime
from typing import List

from pydantic import BaseModel

# ==================== PERFORMANCE ====================

class AssessmentStats(BaseModel):
    assessment_id: str
    title: str
    course_id: str
    course_title: str
    total_attempts: int
    avg_score: float  # 1 decimal, display only
    max_score: int
    avg_percentage: int


class OverallStats(BaseModel):
    total_students: int = 0
    average_score: float = 0.0
    completion_rate: int = 0
    assessments_taken: int = 0  # every attempt counts, repeats included


class CourseCompletion(BaseModel):
    course_id: str
    course_title: str
    assessment_count: int
    total_attempts: int
    completion_rate: int


class InstructorAnalytics(BaseModel):
    overall: OverallStats
    per_assessment: List[AssessmentStats]
    per_course: List[CourseCompletion]


class AssessmentResultRow(BaseModel):
    result_id: str
    student_id: str
    student_name: str
    score: int
    max_score: int
    percentage: int
    attempt_date: datetime

# ==================== ENROLLMENTS ====================

class EnrolledStudent(BaseModel):
    student_id: str
    student_name: str
    enrollment_date: datetime


class CourseEnrollmentAnalytics(BaseModel):
    course_id: str
    course_title: str
    total_enrollments: int
    enrolled_students: List[EnrolledStudent]
    recent_enrollments: List[EnrolledStudent]
