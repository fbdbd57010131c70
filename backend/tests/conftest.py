from __future__ import annotations

from typing import Callable, Optional

import pytest
from bson import ObjectId

from app.services.roster_cache import RosterCache


class _FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = list(docs)

    def sort(self, keys, *_args, **_kwargs):
        for key, direction in reversed(list(keys)):
            self._docs.sort(
                key=lambda d: (d.get(key) is not None, d.get(key)),
                reverse=direction == -1,
            )
        return self

    def skip(self, n: int):
        self._docs = self._docs[n:]
        return self

    def limit(self, n: int):
        if n:
            self._docs = self._docs[:n]
        return self

    async def to_list(self, *, length=None):
        if length is None:
            return list(self._docs)
        return list(self._docs)[:length]


class _InsertOneResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class _UpdateResult:
    def __init__(self, matched_count: int):
        self.matched_count = matched_count
        self.modified_count = matched_count


class _FakeCollection:
    def __init__(self, docs: list[dict] | None = None):
        self._docs = list(docs or [])
        self.fail_insert_one: Optional[Callable[[dict], bool]] = None
        self.fail_insert_many: Optional[Callable[[list[dict]], bool]] = None

    def add(self, *docs: dict) -> None:
        for d in docs:
            d.setdefault("_id", ObjectId())
            self._docs.append(d)

    @property
    def docs(self) -> list[dict]:
        return list(self._docs)

    def _match(self, doc: dict, query: dict) -> bool:
        for k, v in query.items():
            if isinstance(v, dict) and ("$in" in v or "$nin" in v):
                if "$in" in v and doc.get(k) not in v["$in"]:
                    return False
                if "$nin" in v and doc.get(k) in v["$nin"]:
                    return False
                continue
            if doc.get(k) != v:
                return False
        return True

    async def find_one(self, query: dict, sort=None):
        for d in self._docs:
            if self._match(d, query):
                return d
        return None

    def find(self, query: dict):
        return _FakeCursor([d for d in self._docs if self._match(d, query)])

    async def count_documents(self, query: dict) -> int:
        return sum(1 for d in self._docs if self._match(d, query))

    async def insert_one(self, doc: dict):
        if self.fail_insert_one and self.fail_insert_one(doc):
            raise RuntimeError("insert_one failed")
        if "_id" not in doc:
            doc["_id"] = ObjectId()
        self._docs.append(doc)
        return _InsertOneResult(doc["_id"])

    async def insert_many(self, docs: list[dict]):
        if self.fail_insert_many and self.fail_insert_many(docs):
            raise RuntimeError("insert_many failed")
        for d in docs:
            if "_id" not in d:
                d["_id"] = ObjectId()
            self._docs.append(d)

    async def update_one(self, query: dict, update: dict):
        for d in self._docs:
            if self._match(d, query):
                d.update(update.get("$set") or {})
                return _UpdateResult(1)
        return _UpdateResult(0)

    async def delete_many(self, query: dict):
        self._docs = [d for d in self._docs if not self._match(d, query)]

    async def delete_one(self, query: dict):
        for i, d in enumerate(self._docs):
            if self._match(d, query):
                self._docs.pop(i)
                return


@pytest.fixture
def fake_db(monkeypatch) -> dict[str, _FakeCollection]:
    db = {
        name: _FakeCollection()
        for name in ("users", "student_profiles", "groups", "group_members")
    }

    def fake_get_collection(name: str):
        if name not in db:
            raise AssertionError(f"Unexpected collection: {name}")
        return db[name]

    monkeypatch.setattr("app.services.group_service.get_collection", fake_get_collection)
    monkeypatch.setattr("app.utils.dependencies.get_collection", fake_get_collection)
    monkeypatch.setattr(
        "app.services.group_service.get_roster_cache",
        lambda: RosterCache(client=None, ttl=0),
    )
    return db


@pytest.fixture
def seeded_db(fake_db) -> dict[str, _FakeCollection]:
    """Six active students, one inactive student and one teacher."""
    fake_db["users"].add(
        {"uid": "s1", "role": "student", "is_active": True, "full_name": "Ada Lovelace", "email": "ada@example.edu"},
        {"uid": "s2", "role": "student", "is_active": True, "first_name": "Alan", "last_name": "Turing"},
        {"uid": "s3", "role": "student", "is_active": True, "full_name": "Barbara Liskov"},
        {"uid": "s4", "role": "student", "is_active": True, "full_name": "Claude Shannon"},
        {"uid": "s5", "role": "student", "is_active": True, "full_name": "Donald Knuth"},
        {"uid": "s6", "role": "student", "is_active": True, "full_name": "Edsger Dijkstra"},
        {"uid": "s7", "role": "student", "is_active": False, "full_name": "Frances Allen"},
        {"uid": "t1", "role": "teacher", "is_active": True, "full_name": "Grace Hopper"},
    )
    fake_db["student_profiles"].add(
        {
            "user_uid": "s1",
            "year_level": "Senior",
            "major": "CS",
            "profile_completion_percentage": 90,
            "skills": [
                {"name": "Python", "category": "Programming", "proficiency": "expert"},
                {"name": "SQL", "category": "Data", "proficiency": "advanced"},
            ],
            "interests": [{"name": "AI", "category": "Tech"}],
        },
        {
            "user_uid": "s2",
            "year_level": "Freshman",
            "major": "Math",
            "profile_completion_percentage": None,
            "skills": None,
            "interests": [{"name": "AI"}, {"name": "Games"}],
        },
        {
            "user_uid": "s3",
            "year_level": "Junior",
            "profile_completion_percentage": 40,
            "skills": [{"name": "Go", "category": "Programming", "proficiency": "guru"}],
        },
        {"user_uid": "s4", "year_level": "Sophomore", "skills": "not-a-list"},
        {"user_uid": "s7", "year_level": "Senior"},
    )
    return fake_db
