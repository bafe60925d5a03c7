"""Shared fixtures: an in-memory stand-in for the motor database and seed data."""

import copy
from types import SimpleNamespace
from typing import List, Sequence

import pytest
from pymongo.errors import DuplicateKeyError

from edusync import config
from edusync.assessments.models import Question
from edusync.auth.users import Role, User, create_user
from edusync.courses.database import create_course, enroll_student


def _matches(doc: dict, query: dict) -> bool:
    for key, expected in query.items():
        if isinstance(expected, dict) and "$in" in expected:
            if key not in doc or doc[key] not in expected["$in"]:
                return False
        elif doc.get(key) != expected:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[dict]):
        self.docs = docs

    def sort(self, key: str, direction: int = 1):
        self.docs.sort(key=lambda d: d[key], reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        return self.docs if length is None else self.docs[:length]


class FakeCollection:
    """
    Just enough of AsyncIOMotorCollection for the service. Unique keys are
    enforced only when every field of the key is set, like the partial
    index on submission tokens.
    """

    def __init__(self, unique: Sequence[tuple] = ()):
        self.docs: List[dict] = []
        self.unique = list(unique)
        self._next_id = 1

    async def create_index(self, *args, **kwargs):
        return "fake_index"

    async def insert_one(self, doc: dict):
        for fields in self.unique:
            if any(doc.get(f) is None for f in fields):
                continue
            for existing in self.docs:
                if all(existing.get(f) == doc[f] for f in fields):
                    raise DuplicateKeyError(f"E11000 duplicate key: {fields}", 11000)
        stored = copy.deepcopy(doc)
        stored["_id"] = self._next_id
        self._next_id += 1
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    async def find_one(self, query: dict):
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query: dict = None):
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, query or {})])

    async def update_one(self, query: dict, update: dict):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(copy.deepcopy(update.get("$set", {})))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query: dict):
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    name = "edusync_test"

    def __init__(self):
        self.users = FakeCollection(unique=[("user_id",)])
        self.courses = FakeCollection(unique=[("course_id",)])
        self.course_enrollments = FakeCollection(
            unique=[("enrollment_id",), ("student_id", "course_id")]
        )
        self.assessments = FakeCollection(unique=[("assessment_id",)])
        self.results = FakeCollection(unique=[("result_id",), ("user_id", "submission_token")])

    async def command(self, name: str):
        return {"ok": 1.0}


def make_questions(correct: Sequence[int], options: int = 4) -> List[Question]:
    return [
        Question(
            text=f"Question {i + 1}",
            options=[f"Option {chr(65 + j)}" for j in range(options)],
            correct_index=c,
        )
        for i, c in enumerate(correct)
    ]


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    monkeypatch.setattr(config, "JWT_SECRET_KEY", "test-secret")


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
async def seeded(db):
    """One instructor with one course, two enrolled students and one outsider"""
    instructor = await create_user(db, User(user_id="USR_INSTRUCTOR", name="Ada Lovelace", role=Role.INSTRUCTOR))
    alice = await create_user(db, User(user_id="USR_ALICE", name="Alice", role=Role.STUDENT))
    bob = await create_user(db, User(user_id="USR_BOB", name="Bob", role=Role.STUDENT))
    outsider = await create_user(db, User(user_id="USR_CAROL", name="Carol", role=Role.STUDENT))

    course = await create_course(db, {"title": "Algorithms"}, instructor.user_id)
    await enroll_student(db, course.course_id, alice.user_id)
    await enroll_student(db, course.course_id, bob.user_id)

    return SimpleNamespace(
        instructor=instructor,
        alice=alice,
        bob=bob,
        outsider=outsider,
        course=course,
    )
