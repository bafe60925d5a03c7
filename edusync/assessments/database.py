import logging
from typing import Dict, Iterable, List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase

from edusync.assessments import codec
from edusync.assessments.models import Assessment, Question
from edusync.db import generate_id, utcnow

logger = logging.getLogger(__name__)


def _to_model(doc: dict) -> Assessment:
    doc.pop("_id", None)
    return Assessment(**doc)

# ==================== ASSESSMENT CRUD ====================

async def create_assessment(
    db: AsyncIOMotorDatabase,
    title: str,
    course_id: str,
    questions: Sequence[Question],
) -> Assessment:
    """Create assessment; max_score is always the question count"""
    assessment = Assessment(
        assessment_id=generate_id("ASM"),
        title=title,
        course_id=course_id,
        questions=codec.encode(questions),
        max_score=len(questions),
    )
    await db.assessments.insert_one(assessment.model_dump())
    logger.info("Assessment %s created in course %s (%d questions)",
                assessment.assessment_id, course_id, assessment.max_score)
    return assessment


async def get_assessment(db: AsyncIOMotorDatabase, assessment_id: str) -> Optional[Assessment]:
    doc = await db.assessments.find_one({"assessment_id": assessment_id})
    return _to_model(doc) if doc else None


async def list_assessments(db: AsyncIOMotorDatabase) -> List[Assessment]:
    cursor = db.assessments.find({}).sort("created_at", -1)
    return [_to_model(doc) for doc in await cursor.to_list(length=None)]


async def list_assessments_by_courses(db: AsyncIOMotorDatabase, course_ids: Iterable[str]) -> List[Assessment]:
    ids = list(set(course_ids))
    if not ids:
        return []
    cursor = db.assessments.find({"course_id": {"$in": ids}}).sort("created_at", -1)
    return [_to_model(doc) for doc in await cursor.to_list(length=None)]


async def get_assessments(db: AsyncIOMotorDatabase, assessment_ids: Iterable[str]) -> Dict[str, Assessment]:
    """Batch lookup keyed by assessment_id. Deleted assessments are absent."""
    ids = list(set(assessment_ids))
    if not ids:
        return {}
    docs = await db.assessments.find({"assessment_id": {"$in": ids}}).to_list(length=None)
    return {doc["assessment_id"]: _to_model(doc) for doc in docs}


async def update_assessment(
    db: AsyncIOMotorDatabase,
    assessment_id: str,
    title: Optional[str] = None,
    course_id: Optional[str] = None,
    questions: Optional[Sequence[Question]] = None,
) -> Optional[Assessment]:
    """Apply a partial update. Re-encoding questions also rewrites max_score."""
    updates = {}
    if title is not None:
        updates["title"] = title
    if course_id is not None:
        updates["course_id"] = course_id
    if questions is not None:
        updates["questions"] = codec.encode(questions)
        updates["max_score"] = len(questions)

    if updates:
        updates["updated_at"] = utcnow()
        await db.assessments.update_one({"assessment_id": assessment_id}, {"$set": updates})
        logger.info("Assessment %s updated (%s)", assessment_id, ", ".join(sorted(updates)))

    return await get_assessment(db, assessment_id)
