"""
Grading engine for single-answer multiple choice assessments.

Percentages everywhere in the service go through `percent`, which rounds
half-up on exact fractions (2/3 -> 67, 1/8 -> 13, 0/0 -> 0).
"""

from fractions import Fraction
from numbers import Rational
from typing import Sequence, Union

from edusync import config
from edusync.assessments.models import GradeResult, GradeStatus, Question
from edusync.errors import AnswerCountMismatch

PASS_THRESHOLD = config.PASS_THRESHOLD


def round_half_up(value: Union[Rational, float]) -> int:
    """Round a non-negative value to the nearest integer, .5 going up"""
    frac = Fraction(value)
    return int((frac + Fraction(1, 2)) // 1)


def percent(numerator: Union[Rational, float], denominator: Union[Rational, float]) -> int:
    """Whole-number percentage of numerator/denominator, 0 on a zero denominator"""
    if not denominator:
        return 0
    return round_half_up(Fraction(numerator) / Fraction(denominator) * 100)


def grade_status(percentage: int) -> GradeStatus:
    return GradeStatus.PASSED if percentage >= PASS_THRESHOLD else GradeStatus.FAILED


def count_correct(questions: Sequence[Question], submission: Sequence[int]) -> int:
    """Positional match count. Invalid selections simply never match."""
    return sum(
        1 for question, selected in zip(questions, submission)
        if selected == question.correct_index
    )


def grade(questions: Sequence[Question], submission: Sequence[int]) -> GradeResult:
    """
    Score a submission against a question set

    Raises:
        AnswerCountMismatch: submission length differs from question count
    """
    if len(submission) != len(questions):
        raise AnswerCountMismatch(len(questions), len(submission))

    score = count_correct(questions, submission)
    max_score = len(questions)
    percentage = percent(score, max_score)

    return GradeResult(
        score=score,
        max_score=max_score,
        percentage=percentage,
        status=grade_status(percentage),
    )
