"""
Domain errors for grading, analytics and access checks.

Each error carries the HTTP status it maps to; `install_error_handlers`
registers one FastAPI handler for the whole family.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class EduSyncError(Exception):
    status_code = 400
    code = "edusync_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedQuestionSet(EduSyncError):
    """Stored question set could not be decoded"""
    status_code = 422
    code = "malformed_question_set"

    def __init__(self, message: str, position: Optional[int] = None):
        if position is not None:
            message = f"Question {position + 1}: {message}"
        super().__init__(message)
        self.position = position


class AnswerCountMismatch(EduSyncError):
    """Submission does not carry exactly one answer per question"""
    status_code = 422
    code = "answer_count_mismatch"

    def __init__(self, expected: int, received: int):
        super().__init__(f"Expected {expected} answers, received {received}")
        self.expected = expected
        self.received = received


class InvalidAssessment(EduSyncError):
    status_code = 422
    code = "invalid_assessment"


class NotFound(EduSyncError):
    status_code = 404
    code = "not_found"


class Unauthorized(EduSyncError):
    status_code = 401
    code = "unauthorized"


class Forbidden(EduSyncError):
    status_code = 403
    code = "forbidden"


async def edusync_error_handler(request: Request, exc: EduSyncError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Unhandled domain error on %s: %s", request.url.path, exc.message)
    else:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EduSyncError, edusync_error_handler)
