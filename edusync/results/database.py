"""
Attempt record store

Results are insert-only. Removal happens only through cascading deletes of the
parent assessment or user, which this service does not perform.
"""

import logging
from typing import Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from edusync.db import generate_id
from edusync.results.models import Result

logger = logging.getLogger(__name__)


def _to_model(doc: dict) -> Result:
    doc.pop("_id", None)
    return Result(**doc)


async def create_result(
    db: AsyncIOMotorDatabase,
    assessment_id: str,
    user_id: str,
    score: int,
    submission_token: Optional[str] = None,
) -> Result:
    """
    Persist one attempt

    Raises DuplicateKeyError when the user already stored a result under the
    same submission_token.
    """
    result = Result(
        result_id=generate_id("RES"),
        assessment_id=assessment_id,
        user_id=user_id,
        score=score,
        submission_token=submission_token,
    )
    doc = result.model_dump()
    if submission_token is None:
        doc.pop("submission_token")

    await db.results.insert_one(doc)
    logger.info("Result %s stored: user=%s assessment=%s score=%d",
                result.result_id, user_id, assessment_id, score)
    return result


async def find_result_by_token(db: AsyncIOMotorDatabase, user_id: str, submission_token: str) -> Optional[Result]:
    if not submission_token:
        return None
    doc = await db.results.find_one({"user_id": user_id, "submission_token": submission_token})
    return _to_model(doc) if doc else None


async def find_results_by_user(db: AsyncIOMotorDatabase, user_id: str) -> List[Result]:
    """All attempts by one student, unordered"""
    docs = await db.results.find({"user_id": user_id}).to_list(length=None)
    return [_to_model(doc) for doc in docs]


async def find_results_by_assessment(db: AsyncIOMotorDatabase, assessment_id: str) -> List[Result]:
    docs = await db.results.find({"assessment_id": assessment_id}).to_list(length=None)
    return [_to_model(doc) for doc in docs]


async def find_results_by_assessment_ids(db: AsyncIOMotorDatabase, assessment_ids: Iterable[str]) -> List[Result]:
    ids = list(set(assessment_ids))
    if not ids:
        return []
    docs = await db.results.find({"assessment_id": {"$in": ids}}).to_list(length=None)
    return [_to_model(doc) for doc in docs]


async def has_results(db: AsyncIOMotorDatabase, assessment_id: str) -> bool:
    return await db.results.find_one({"assessment_id": assessment_id}) is not None
