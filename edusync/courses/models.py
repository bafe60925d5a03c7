from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from edusync.db import utcnow

# ==================== DATABASE MODELS ====================

class Course(BaseModel):
    course_id: str  # CRS_XXXXXXXXXXXX
    title: str
    description: str = ""
    instructor_id: str
    created_at: datetime = Field(default_factory=utcnow)


class CourseEnrollment(BaseModel):
    """
    One row per (student, course) pair
    Gates access to the course's assessments
    """
    enrollment_id: str  # ENR_XXXXXXXXXXXX
    student_id: str
    course_id: str
    enrollment_date: datetime = Field(default_factory=utcnow)

# ==================== REQUEST SCHEMAS ====================

class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""

# ==================== RESPONSE SCHEMAS ====================

class EnrollmentResponse(BaseModel):
    enrollment_id: str
    course_id: str
    course_title: Optional[str] = None
    enrollment_date: datetime
