"""
Test fixtures for the CodeNest API.

Provides an in-memory stand-in for the Motor collections the service uses,
a scripted sandbox executor, and an authenticated TestClient.
"""

import copy
import datetime as dt
from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient

from codenest import config
from codenest.auth.auth_utils import create_access_token
from codenest.dependencies import get_db, get_executor
from codenest.execution.piston import ExecutionResult
from codenest.main import app

TODAY = dt.date(2026, 3, 10)

# ==================== IN-MEMORY MONGO ====================

@dataclass
class FakeUpdateResult:
    matched_count: int
    modified_count: int
    upserted_id: object = None


def _matches(doc, query):
    return all(doc.get(key) == value for key, value in query.items())


def _project(doc, projection):
    if not projection:
        return copy.deepcopy(doc)
    keep = [k for k, v in projection.items() if v and k != "_id"]
    out = {k: copy.deepcopy(doc[k]) for k in keep if k in doc}
    if projection.get("_id", 1) and "_id" in doc:
        out["_id"] = doc["_id"]
    return out


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs.sort(key=lambda d: d.get(key, 0), reverse=direction == -1)
        return self

    def skip(self, n):
        self._docs = self._docs[n:]
        return self

    def limit(self, n):
        self._docs = self._docs[:n]
        return self

    async def to_list(self, length=None):
        return self._docs if length is None else self._docs[:length]


class FakeCollection:
    def __init__(self):
        self.docs = []
        self.indexes = []
        self._next_id = 1

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return str(keys)

    async def insert_one(self, doc):
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", self._next_id)
        self._next_id += 1
        self.docs.append(doc)
        return doc["_id"]

    async def insert_many(self, docs):
        for doc in docs:
            await self.insert_one(doc)

    async def find_one(self, query, projection=None):
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    def find(self, query=None, projection=None):
        return FakeCursor([_project(d, projection) for d in self.docs if _matches(d, query or {})])

    async def update_one(self, query, update, upsert=False):
        for doc in self.docs:
            if _matches(doc, query):
                for key, value in update.get("$set", {}).items():
                    doc[key] = copy.deepcopy(value)
                for key, value in update.get("$inc", {}).items():
                    doc[key] = doc.get(key, 0) + value
                return FakeUpdateResult(matched_count=1, modified_count=1)

        if upsert:
            doc = dict(query)
            doc.update(copy.deepcopy(update.get("$setOnInsert", {})))
            doc.update(copy.deepcopy(update.get("$set", {})))
            doc_id = await self.insert_one(doc)
            return FakeUpdateResult(matched_count=0, modified_count=0, upserted_id=doc_id)

        return FakeUpdateResult(matched_count=0, modified_count=0)


class FakeDatabase:
    def __init__(self):
        self._collections = {}

    def __getitem__(self, name):
        return self._collections.setdefault(name, FakeCollection())

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

# ==================== SANDBOX ====================

class ScriptedExecutor:
    """
    Sandbox double. `respond(code, language, stdin)` returns an
    ExecutionResult or raises an ExecutionError.
    """

    def __init__(self, respond=None):
        self.calls = []
        self.respond = respond or (lambda code, language, stdin: ExecutionResult(stdout=stdin))

    async def execute(self, code, language, stdin=""):
        self.calls.append((code, language, stdin))
        return self.respond(code, language, stdin)


def python_topic(order, title=None, cases=None):
    return {
        "order": order,
        "title": title or f"Topic {order}",
        "description": "",
        "test_cases": cases if cases is not None else [
            {"input": "1", "expected_output": "1"},
            {"input": "2", "expected_output": "2"},
            {"input": "3", "expected_output": "3"},
        ],
    }

# ==================== FIXTURES ====================

@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def executor():
    return ScriptedExecutor()


@pytest.fixture
def seeded_db(db):
    for order in (1, 2, 3):
        db.topics.docs.append(python_topic(order))
    return db


@pytest.fixture
def client(seeded_db, executor, monkeypatch):
    monkeypatch.setattr(config, "JWT_SECRET_KEY", "test-secret-key-for-codenest")
    app.dependency_overrides[get_db] = lambda: seeded_db
    app.dependency_overrides[get_executor] = lambda: executor
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    token = create_access_token("user-1", username="ada")
    return {"Authorization": f"Bearer {token}"}
