from __future__ import annotations

import httpx
import pytest
from bson import ObjectId
from fastapi import FastAPI

from app.api import groups as groups_api
from app.utils import dependencies


def _app_for(user: dict) -> FastAPI:
    app = FastAPI()
    app.include_router(groups_api.router, prefix="/api/groups")

    async def override_current_user():
        return user

    app.dependency_overrides[dependencies.get_current_user] = override_current_user
    return app


def _client(app: FastAPI) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_groups_endpoints_deny_students(fake_db):
    app = _app_for({"uid": "s1", "role": "student"})

    async with _client(app) as client:
        assert (await client.get("/api/groups/suggest")).status_code == 403
        assert (await client.get("/api/groups/algorithms")).status_code == 403
        res = await client.post("/api/groups/commit", json={"groups": [{"members": ["s1", "s2"]}]})
        assert res.status_code == 403
        assert fake_db["groups"].docs == []


@pytest.mark.asyncio
async def test_algorithm_catalog_lists_all_strategies(fake_db):
    app = _app_for({"uid": "a1", "role": "admin"})

    async with _client(app) as client:
        res = await client.get("/api/groups/algorithms")

    assert res.status_code == 200
    body = res.json()
    assert set(body["algorithms"]) == {
        "balanced_skills",
        "similar_interests",
        "mixed_experience",
        "random_balanced",
    }
    assert body["formation_criteria"]["group_constraints"]["preferred_size"] == 4


@pytest.mark.asyncio
async def test_suggest_then_commit_flow(seeded_db):
    app = _app_for({"uid": "t1", "role": "teacher"})

    async with _client(app) as client:
        suggested = await client.get(
            "/api/groups/suggest",
            params={"algorithm": "mixed_experience", "group_size": 2, "exclude_ids": ["s5", "s6"]},
        )
        assert suggested.status_code == 200
        body = suggested.json()
        assert body["algorithm"] == "mixed_experience"
        assert body["total_students"] == 4
        assert len(body["suggested_groups"]) == 2
        for group in body["suggested_groups"]:
            assert len(group["members"]) == 2
            assert 0 <= group["quality_score"] <= 100
            assert "skill_categories" in group["analysis"]
        assert body["group_analysis"]["total_groups"] == 2

        payload = {
            "algorithm": body["algorithm"],
            "group_size": body["group_size"],
            "groups": [
                {"members": [m["id"] for m in g["members"]], "quality_score": g["quality_score"]}
                for g in body["suggested_groups"]
            ],
        }
        committed = await client.post("/api/groups/commit", json=payload)
        assert committed.status_code == 201
        result = committed.json()
        assert len(result["created"]) == 2
        assert result["failed"] == []
        assert result["total_members"] == 4

        listed = await client.get("/api/groups")
        assert listed.status_code == 200
        listed_body = listed.json()
        assert listed_body["pagination"]["total"] == 2
        assert all(g["current_size"] == 2 for g in listed_body["groups"])
        assert all(g["created_by"] == "t1" for g in listed_body["groups"])


@pytest.mark.asyncio
async def test_suggest_rejects_non_positive_group_size(seeded_db):
    app = _app_for({"uid": "t1", "role": "teacher"})

    async with _client(app) as client:
        res = await client.get("/api/groups/suggest", params={"group_size": 0})

    assert res.status_code == 400


@pytest.mark.asyncio
async def test_commit_rejects_duplicate_members(fake_db):
    app = _app_for({"uid": "t1", "role": "teacher"})

    async with _client(app) as client:
        res = await client.post(
            "/api/groups/commit",
            json={"groups": [{"members": ["s1", "s2"]}, {"members": ["s2", "s3"]}]},
        )

    assert res.status_code == 400
    assert fake_db["groups"].docs == []


@pytest.mark.asyncio
async def test_manual_group_crud(seeded_db):
    app = _app_for({"uid": "t1", "role": "teacher"})

    async with _client(app) as client:
        created = await client.post(
            "/api/groups",
            json={"name": "Robotics", "max_size": 3, "member_ids": ["s1", "s3"]},
        )
        assert created.status_code == 201
        group_id = created.json()["id"]

        fetched = await client.get(f"/api/groups/{group_id}")
        assert fetched.status_code == 200
        assert fetched.json()["current_size"] == 2

        updated = await client.put(f"/api/groups/{group_id}", json={"name": "Robotics II"})
        assert updated.status_code == 200
        assert updated.json()["name"] == "Robotics II"
        assert updated.json()["current_size"] == 2

        deleted = await client.delete(f"/api/groups/{group_id}")
        assert deleted.status_code == 200

        missing = await client.get(f"/api/groups/{group_id}")
        assert missing.status_code == 404

        assert (await client.get(f"/api/groups/{ObjectId()}")).status_code == 404
        assert (await client.get("/api/groups/not-an-id")).status_code == 400


@pytest.mark.asyncio
async def test_groups_health():
    app = FastAPI()
    app.include_router(groups_api.router, prefix="/api/groups")

    async with _client(app) as client:
        res = await client.get("/api/groups/health")

    assert res.json() == {"status": "ok", "service": "groups"}
