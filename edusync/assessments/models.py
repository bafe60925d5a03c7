from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator, model_validator

from edusync.db import utcnow

# ==================== ENUMS ====================

class GradeStatus(str, Enum):
    PASSED = "Passed"
    FAILED = "Failed"

# ==================== QUESTION MODELS ====================

class Question(BaseModel):
    """
    Single-answer multiple choice question
    `correct_index` is zero-based into `options`
    """
    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    text: StrictStr
    options: List[StrictStr] = Field(..., min_length=2)
    correct_index: StrictInt = Field(..., alias="correctIndex")

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v):
        if not v.strip():
            raise ValueError("question text must not be empty")
        return v

    @field_validator("options")
    @classmethod
    def options_not_blank(cls, v):
        if any(not opt.strip() for opt in v):
            raise ValueError("options must not be empty")
        return v

    @model_validator(mode="after")
    def correct_index_in_range(self):
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(
                f"correctIndex {self.correct_index} out of range for {len(self.options)} options"
            )
        return self


class QuestionView(BaseModel):
    """Question as shown to a student: no answer key"""
    text: str
    options: List[str]

# ==================== DATABASE MODELS ====================

class Assessment(BaseModel):
    assessment_id: str  # ASM_XXXXXXXXXXXX
    title: str
    course_id: str
    questions: str  # encoded question set, see codec
    max_score: int
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

# ==================== REQUEST SCHEMAS ====================

class AssessmentCreate(BaseModel):
    title: str = Field(..., min_length=1)
    course_id: str
    questions: List[Question] = Field(..., min_length=1)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Assessment title is required.")
        return v


class AssessmentUpdate(BaseModel):
    title: Optional[str] = None
    course_id: Optional[str] = None
    questions: Optional[List[Question]] = None


class AttemptRequest(BaseModel):
    selected_answers: List[StrictInt]
    submission_token: Optional[str] = Field(None, min_length=8, max_length=64)

# ==================== RESPONSE SCHEMAS ====================

class GradeResult(BaseModel):
    score: int
    max_score: int
    percentage: int
    status: GradeStatus


class AttemptResponse(GradeResult):
    result_id: str
    assessment_id: str
    attempt_date: datetime


class AssessmentSummary(BaseModel):
    assessment_id: str
    title: str
    course_id: str
    max_score: int


class AssessmentDetail(AssessmentSummary):
    questions: List[QuestionView]


class AssessmentAuthorView(AssessmentSummary):
    questions: List[Question]
