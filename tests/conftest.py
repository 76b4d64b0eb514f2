import copy
import os
import re
import sys
from types import SimpleNamespace

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))
# Set minimal environment variables required by the settings module before
# importing anything from src.
os.environ.setdefault("MONGO_URL", "mongodb://localhost:27017")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ADMIN_EMAILS", "Admin@Fest.org, second@fest.org")
os.environ.setdefault("ADMIN_CREATION_TOKEN", "create-me")
os.environ.setdefault("EMAIL_API_URL", "http://email.test/api")
os.environ.setdefault("EMAIL_SEND_DELAY", "0")


def _get(doc, path):
    value = doc
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _matches(doc, query):
    for key, cond in query.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in cond):
                return False
            continue
        value = _get(doc, key)
        if isinstance(cond, dict):
            if "$regex" in cond:
                flags = re.I if "i" in cond.get("$options", "") else 0
                if not isinstance(value, str) or not re.search(cond["$regex"], value, flags):
                    return False
            if "$ne" in cond and value == cond["$ne"]:
                return False
        elif value != cond:
            return False
    return True


def _set(doc, path, value):
    parts = path.split(".")
    for part in parts[:-1]:
        doc = doc.setdefault(part, {})
    doc[parts[-1]] = value


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs

    def sort(self, key, direction=1):
        self.docs.sort(key=lambda d: _get(d, key) or 0, reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        return list(self.docs)

    def __aiter__(self):
        self._iter = iter(self.docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    def __init__(self, docs=None):
        self.docs = [copy.deepcopy(d) for d in (docs or [])]
        self.bulk_calls = []
        self.update_calls = []

    async def find_one(self, query):
        for d in self.docs:
            if _matches(d, query):
                return copy.deepcopy(d)
        return None

    def find(self, query=None):
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, query or {})])

    async def count_documents(self, query):
        return len([d for d in self.docs if _matches(d, query)])

    async def insert_one(self, doc):
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc.get("_id"))

    async def update_one(self, query, operation):
        self.update_calls.append((query, operation))
        for d in self.docs:
            if _matches(d, query):
                for path, value in operation.get("$set", {}).items():
                    _set(d, path, copy.deepcopy(value))
                for path, value in operation.get("$push", {}).items():
                    current = _get(d, path)
                    if current is None:
                        current = []
                        _set(d, path, current)
                    current.append(copy.deepcopy(value))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def bulk_write(self, requests, ordered=True):
        self.bulk_calls.append(len(requests))
        for req in requests:
            doc = copy.deepcopy(req._doc)
            self.docs = [d for d in self.docs if d.get("_id") != doc["_id"]]
            self.docs.append(doc)
        return SimpleNamespace(upserted_count=len(requests))


class FakeDB:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.lists = {}

    async def hset(self, key, mapping=None, **kwargs):
        data = self.store.setdefault(key, {})
        if mapping:
            data.update(mapping)
        if kwargs:
            data.update(kwargs)

    async def hget(self, key, field):
        return self.store.get(key, {}).get(field)

    async def hgetall(self, key):
        return dict(self.store.get(key, {}))

    async def rpush(self, key, value):
        self.lists.setdefault(key, []).append(value)

    async def lpop(self, key):
        items = self.lists.get(key) or []
        return items.pop(0) if items else None

    async def get(self, key):
        return self.store.get(key)

    async def incr(self, key):
        self.store[key] = int(self.store.get(key) or 0) + 1
        return self.store[key]

    async def expire(self, key, seconds):
        return True


@pytest.fixture
def fake_db(monkeypatch):
    import services.registrations
    import worker
    import routes.auth

    fake = FakeDB()
    monkeypatch.setattr(services.registrations, "db", fake)
    monkeypatch.setattr(worker, "db", fake)
    monkeypatch.setattr(routes.auth, "db", fake)
    return fake


@pytest.fixture
def fake_redis(monkeypatch):
    import core.auth
    import routes.emails
    import worker

    fake = FakeRedis()
    monkeypatch.setattr(core.auth, "redis", fake)
    monkeypatch.setattr(routes.emails, "redis", fake)
    monkeypatch.setattr(worker, "redis", fake)
    return fake


def make_registration(registration_id="TF2025-AAAA0001", **overrides):
    from models.registration import Registration

    data = {
        "registrationId": registration_id,
        "name": "Asha Raman",
        "email": "asha@college.edu",
        "whatsapp": "+919876543210",
        "college": "Anna University",
        "department": "CSE",
        "year": "3",
    }
    data.update(overrides)
    return Registration(**data).to_document()
