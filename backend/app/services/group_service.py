from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Iterable, Optional

from bson import ObjectId
from fastapi import HTTPException, status

from app.ai.group_maker import STRATEGIES, make_groups, resolve_algorithm
from app.ai.group_scoring import analyze_partition
from app.config import settings
from app.database.collections import GROUP_MEMBERS, GROUPS, STUDENT_PROFILES, USERS, get_collection
from app.models.group import (
    AlgorithmCatalogResponse,
    CommitGroupsRequest,
    CommitGroupsResponse,
    CommittedGroup,
    FailedGroup,
    GroupCompositionResponse,
    GroupCreateRequest,
    GroupSuggestionResponse,
    GroupUpdateRequest,
    PartitionAnalysisResponse,
    SuggestedGroup,
)
from app.models.student import StudentCandidate
from app.services.roster_cache import RosterCache, get_roster_cache

logger = logging.getLogger(__name__)

ALGORITHMS = {
    "balanced_skills": {
        "name": "Balanced Skills",
        "description": "Create groups with complementary skill sets, ensuring each group has diverse abilities",
        "criteria": ["skills_diversity", "skill_levels", "technical_balance"],
        "optimal_size": 4,
        "considerations": [
            "Each group gets members with different technical skills",
            "Balances skill proficiency levels across groups",
            "Ensures no group is all beginners or all experts",
        ],
    },
    "similar_interests": {
        "name": "Similar Interests",
        "description": "Group students with similar interests and career goals for better collaboration",
        "criteria": ["interests_overlap", "career_alignment", "project_preferences"],
        "optimal_size": 3,
        "considerations": [
            "Students with similar interests work well together",
            "Aligned career goals improve motivation",
            "Shared interests lead to better communication",
        ],
    },
    "mixed_experience": {
        "name": "Mixed Experience Levels",
        "description": "Combine students of different experience levels for peer mentoring",
        "criteria": ["year_level_mix", "experience_diversity", "mentoring_opportunities"],
        "optimal_size": 4,
        "considerations": [
            "Senior students can mentor juniors",
            "Different perspectives from various experience levels",
            "Knowledge transfer between group members",
        ],
    },
    "random_balanced": {
        "name": "Random with Balance",
        "description": "Random assignment with basic balancing to ensure fair distribution",
        "criteria": ["random_assignment", "basic_balance", "equal_group_sizes"],
        "optimal_size": 4,
        "considerations": [
            "Promotes interaction between unlikely collaborators",
            "Reduces bias in group formation",
            "Ensures equal group sizes",
        ],
    },
}

FORMATION_CRITERIA = {
    "skills_factors": {
        "diversity_weight": 0.4,
        "complementarity_weight": 0.3,
        "proficiency_balance_weight": 0.3,
    },
    "interests_factors": {
        "overlap_threshold": 0.6,
        "career_alignment_weight": 0.5,
        "project_preference_weight": 0.5,
    },
    "experience_factors": {
        "year_level_spread": 0.4,
        "skill_level_distribution": 0.6,
    },
    "group_constraints": {
        "min_size": 2,
        "max_size": 6,
        "preferred_size": 4,
    },
}


def _now() -> datetime:
    return datetime.utcnow()


def _parse_group_id(group_id: str) -> ObjectId:
    if not ObjectId.is_valid(group_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid group id")
    return ObjectId(group_id)


def _full_name(user: dict) -> str:
    if user.get("full_name"):
        return user["full_name"]
    return " ".join(p for p in (user.get("first_name"), user.get("last_name")) if p)


def _named_entries(value) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict) and v.get("name")]


def _to_candidate(user: dict, profile: Optional[dict]) -> StudentCandidate:
    profile = profile or {}
    return StudentCandidate(
        id=user["uid"],
        full_name=_full_name(user),
        email=user.get("email"),
        year_level=profile.get("year_level"),
        major=profile.get("major"),
        profile_completion_percentage=profile.get("profile_completion_percentage"),
        skills=_named_entries(profile.get("skills")),
        interests=_named_entries(profile.get("interests")),
    )


async def _profiles_by_uid(uids: list[str]) -> dict[str, dict]:
    if not uids:
        return {}
    profiles = await get_collection(STUDENT_PROFILES).find({"user_uid": {"$in": uids}}).to_list(length=None)
    return {p["user_uid"]: p for p in profiles if p.get("user_uid")}


async def load_roster(
    *,
    exclude_ids: Optional[Iterable[str]] = None,
    cache: Optional[RosterCache] = None,
) -> list[StudentCandidate]:
    excluded = sorted({uid for uid in (exclude_ids or []) if uid})
    cache = cache or get_roster_cache()

    cached = await cache.get(excluded)
    if cached is not None:
        return cached

    query: dict = {"role": "student", "is_active": True}
    if excluded:
        query["uid"] = {"$nin": excluded}

    users = await (
        get_collection(USERS)
        .find(query)
        .sort([("full_name", 1), ("uid", 1)])
        .to_list(length=None)
    )
    users = [u for u in users if u.get("uid")]
    profiles = await _profiles_by_uid([u["uid"] for u in users])

    roster = [_to_candidate(u, profiles.get(u["uid"])) for u in users]
    await cache.set(excluded, roster)
    return roster


def _validate_group_size(group_size: int) -> None:
    if group_size <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="group_size must be a positive integer",
        )
    if group_size > settings.max_group_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"group_size must be at most {settings.max_group_size}",
        )


async def suggest_groups(
    *,
    algorithm: Optional[str],
    group_size: int,
    exclude_ids: Optional[Iterable[str]] = None,
    seed: Optional[int] = None,
) -> GroupSuggestionResponse:
    _validate_group_size(group_size)
    resolved = resolve_algorithm(algorithm)

    roster = await load_roster(exclude_ids=exclude_ids)
    logger.info("Suggesting %s groups of %d from %d students", resolved, group_size, len(roster))

    try:
        made = make_groups(students=roster, group_size=group_size, algorithm=resolved, seed=seed)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return GroupSuggestionResponse(
        algorithm=resolved,
        group_size=group_size,
        total_students=len(roster),
        suggested_groups=[
            SuggestedGroup(
                members=g.members,
                quality_score=g.quality_score,
                analysis=GroupCompositionResponse(**asdict(g.analysis)),
            )
            for g in made
        ],
        group_analysis=PartitionAnalysisResponse(**asdict(analyze_partition(made))),
    )


def _validate_commit(request: CommitGroupsRequest) -> None:
    if request.algorithm not in STRATEGIES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown algorithm: {request.algorithm}",
        )
    if not request.groups:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Groups data is required")

    seen: set[str] = set()
    for index, group in enumerate(request.groups):
        if not group.members:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Group {index + 1} has no members",
            )
        if len(group.members) > request.group_size:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Group {index + 1} has more than {request.group_size} members",
            )
        for uid in group.members:
            if not uid.strip():
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Group {index + 1} has a blank member id",
                )
            if uid in seen:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Student {uid} appears in more than one group",
                )
            seen.add(uid)


def _group_name(request: CommitGroupsRequest, index: int) -> str:
    if index < len(request.group_names) and request.group_names[index].strip():
        return request.group_names[index].strip()
    return f"Group {index + 1}"


async def commit_partition(*, request: CommitGroupsRequest, created_by: str) -> CommitGroupsResponse:
    """
    Persist accepted suggestions, one group at a time.

    Writes are not transactional. A failing group is reported in ``failed``
    and the remaining groups are still written; earlier groups stay committed.
    """
    _validate_commit(request)

    groups_collection = get_collection(GROUPS)
    members_collection = get_collection(GROUP_MEMBERS)

    created: list[CommittedGroup] = []
    failed: list[FailedGroup] = []

    for index, item in enumerate(request.groups):
        name = _group_name(request, index)
        now = _now()
        group_id: Optional[ObjectId] = None
        try:
            result = await groups_collection.insert_one(
                {
                    "name": name,
                    "description": f"Automatically formed using {request.algorithm} algorithm",
                    "project_id": request.project_id,
                    "max_size": request.group_size,
                    "status": "active",
                    "formation_criteria": {
                        "algorithm": request.algorithm,
                        "formation_date": now.isoformat(),
                        "quality_score": item.quality_score,
                    },
                    "created_by": created_by,
                    "created_at": now,
                    "updated_at": now,
                }
            )
            group_id = result.inserted_id
            await members_collection.insert_many(
                [
                    {"group_id": group_id, "user_uid": uid, "role": "member", "joined_at": now}
                    for uid in item.members
                ]
            )
        except Exception as e:
            logger.warning("Failed to commit group %d (%s): %s", index + 1, name, e)
            failed.append(
                FailedGroup(
                    index=index,
                    name=name,
                    error=str(e),
                    group_id=str(group_id) if group_id is not None else None,
                )
            )
            continue

        created.append(
            CommittedGroup(
                index=index,
                group_id=str(group_id),
                name=name,
                member_uids=list(item.members),
                quality_score=item.quality_score,
            )
        )

    logger.info(
        "Committed %d/%d %s groups", len(created), len(request.groups), request.algorithm
    )
    return CommitGroupsResponse(
        algorithm=request.algorithm,
        created=created,
        failed=failed,
        total_members=sum(len(g.member_uids) for g in created),
    )


def get_algorithm_catalog() -> AlgorithmCatalogResponse:
    return AlgorithmCatalogResponse(algorithms=ALGORITHMS, formation_criteria=FORMATION_CRITERIA)


async def _member_payloads(group_ids: list[ObjectId], *, with_profiles: bool = False) -> dict[ObjectId, list[dict]]:
    if not group_ids:
        return {}

    memberships = await (
        get_collection(GROUP_MEMBERS)
        .find({"group_id": {"$in": group_ids}})
        .sort([("joined_at", 1), ("_id", 1)])
        .to_list(length=None)
    )
    uids = list({m["user_uid"] for m in memberships})
    users = {}
    if uids:
        users = {
            u["uid"]: u
            for u in await get_collection(USERS).find({"uid": {"$in": uids}}).to_list(length=None)
        }
    profiles = await _profiles_by_uid(uids) if with_profiles else {}

    by_group: dict[ObjectId, list[dict]] = {gid: [] for gid in group_ids}
    for m in memberships:
        user = users.get(m["user_uid"]) or {}
        profile = profiles.get(m["user_uid"]) or {}
        by_group.setdefault(m["group_id"], []).append(
            {
                "user_uid": m["user_uid"],
                "role": m.get("role") or "member",
                "joined_at": m.get("joined_at"),
                "full_name": _full_name(user) or None,
                "email": user.get("email"),
                "year_level": profile.get("year_level"),
                "major": profile.get("major"),
            }
        )
    return by_group


def serialize_group(doc: dict, *, members: Optional[list[dict]] = None) -> dict:
    members = list(members or [])
    return {
        "id": str(doc["_id"]),
        "name": doc.get("name") or "",
        "description": doc.get("description"),
        "project_id": doc.get("project_id"),
        "max_size": int(doc.get("max_size") or 0),
        "status": doc.get("status") or "active",
        "formation_criteria": dict(doc.get("formation_criteria") or {}),
        "created_by": doc.get("created_by"),
        "current_size": len(members),
        "members": members,
        "created_at": doc.get("created_at"),
        "updated_at": doc.get("updated_at"),
    }


async def list_groups(
    *,
    project_id: Optional[str] = None,
    status_filter: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[dict], int]:
    query: dict = {}
    if project_id:
        query["project_id"] = project_id
    if status_filter:
        query["status"] = status_filter

    groups_collection = get_collection(GROUPS)
    total = await groups_collection.count_documents(query)
    groups = await (
        groups_collection.find(query)
        .sort([("created_at", -1), ("_id", -1)])
        .skip((page - 1) * limit)
        .limit(limit)
        .to_list(length=None)
    )

    members = await _member_payloads([g["_id"] for g in groups])
    return [serialize_group(g, members=members.get(g["_id"])) for g in groups], total


async def get_group(group_id: str) -> dict:
    group_oid = _parse_group_id(group_id)
    group = await get_collection(GROUPS).find_one({"_id": group_oid})
    if not group:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")

    members = await _member_payloads([group_oid], with_profiles=True)
    return serialize_group(group, members=members.get(group_oid))


def _ensure_fits(member_ids: list[str], max_size: int) -> None:
    if len(set(member_ids)) != len(member_ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Duplicate member ids")
    if len(member_ids) > max_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Group cannot have more than {max_size} members",
        )


async def _replace_members(group_oid: ObjectId, member_ids: list[str]) -> None:
    members_collection = get_collection(GROUP_MEMBERS)
    await members_collection.delete_many({"group_id": group_oid})
    if member_ids:
        now = _now()
        await members_collection.insert_many(
            [
                {"group_id": group_oid, "user_uid": uid, "role": "member", "joined_at": now}
                for uid in member_ids
            ]
        )


async def create_group(*, request: GroupCreateRequest, created_by: str) -> dict:
    _ensure_fits(request.member_ids, request.max_size)

    now = _now()
    doc = {
        "name": request.name.strip(),
        "description": request.description,
        "project_id": request.project_id,
        "max_size": request.max_size,
        "status": "active",
        "formation_criteria": dict(request.formation_criteria),
        "created_by": created_by,
        "created_at": now,
        "updated_at": now,
    }
    result = await get_collection(GROUPS).insert_one(doc)
    await _replace_members(result.inserted_id, request.member_ids)
    return await get_group(str(result.inserted_id))


async def update_group(group_id: str, request: GroupUpdateRequest) -> dict:
    group_oid = _parse_group_id(group_id)
    groups_collection = get_collection(GROUPS)
    existing = await groups_collection.find_one({"_id": group_oid})
    if not existing:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")

    changes = request.model_dump(exclude_none=True, exclude={"member_ids"})
    if request.member_ids:
        _ensure_fits(request.member_ids, changes.get("max_size") or int(existing.get("max_size") or 0))

    changes["updated_at"] = _now()
    await groups_collection.update_one({"_id": group_oid}, {"$set": changes})

    if request.member_ids:
        await _replace_members(group_oid, request.member_ids)
    return await get_group(group_id)


async def delete_group(group_id: str) -> None:
    group_oid = _parse_group_id(group_id)
    groups_collection = get_collection(GROUPS)
    if not await groups_collection.find_one({"_id": group_oid}):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")

    await get_collection(GROUP_MEMBERS).delete_many({"group_id": group_oid})
    await groups_collection.delete_one({"_id": group_oid})
