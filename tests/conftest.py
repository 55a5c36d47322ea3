"""Pytest fixtures: an in-memory stand-in for the motor expenses collection.

The fake implements just the collection surface the service layer touches
(insert_one, find().sort(), update_one with $set, delete_one, and
database.command for the health check), with the same result attributes
motor returns.
"""
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from config import Settings
from main import create_app


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        self._docs = sorted(self._docs, key=lambda doc: doc[key], reverse=direction == -1)
        return self

    def __aiter__(self):
        self._iter = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeDatabase:
    def __init__(self):
        self.fail_with = None

    async def command(self, name: str):
        if self.fail_with is not None:
            raise self.fail_with
        return {"ok": 1.0}


class FakeCollection:
    """In-memory collection keyed by ObjectId. Set `fail_with` to make every call raise."""

    name = "expenses"

    def __init__(self):
        self.docs: Dict[ObjectId, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.database = FakeDatabase()
        self.fail_with = None

    def _check(self, operation: str, *args):
        self.calls.append((operation, *args))
        if self.fail_with is not None:
            raise self.fail_with

    async def insert_one(self, document: Dict[str, Any]):
        self._check("insert_one", document)
        oid = ObjectId()
        self.docs[oid] = {"_id": oid, **document}
        return SimpleNamespace(inserted_id=oid, acknowledged=True)

    def find(self, filter: Dict[str, Any] = None):
        self._check("find", filter)
        return FakeCursor([dict(doc) for doc in self.docs.values()])

    async def update_one(self, filter: Dict[str, Any], update: Dict[str, Any]):
        self._check("update_one", filter, update)
        doc = self.docs.get(filter["_id"])
        if doc is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        doc.update(update["$set"])
        return SimpleNamespace(matched_count=1, modified_count=1 if update["$set"] else 0)

    async def delete_one(self, filter: Dict[str, Any]):
        self._check("delete_one", filter)
        removed = self.docs.pop(filter["_id"], None)
        return SimpleNamespace(deleted_count=0 if removed is None else 1)


@pytest.fixture
def collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture
def settings() -> Settings:
    return Settings(mongodb_uri="mongodb://unused:27017")


@pytest.fixture
def client(settings, collection):
    with TestClient(create_app(settings, collection=collection)) as test_client:
        yield test_client
