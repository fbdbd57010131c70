from __future__ import annotations

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app.config import settings

_client: AsyncIOMotorClient | None = None


def get_client() -> AsyncIOMotorClient:
    if _client is None:
        raise RuntimeError("MongoDB client is not initialized")
    return _client


def get_db() -> AsyncIOMotorDatabase:
    return get_client()[settings.mongodb_db_name]


async def connect_to_mongo() -> None:
    global _client
    if _client is not None:
        return

    _client = AsyncIOMotorClient(
        settings.mongodb_url,
        serverSelectionTimeoutMS=settings.mongodb_server_selection_timeout_ms,
        uuidRepresentation="standard",
    )


async def close_mongo_connection() -> None:
    global _client
    if _client is None:
        return

    _client.close()
    _client = None


async def ensure_mongo_indexes() -> None:
    # collections imports get_db from this module.
    from app.database.collections import GROUP_MEMBERS, GROUPS, STUDENT_PROFILES, USERS

    db = get_db()

    await db[USERS].create_index([("uid", ASCENDING)], unique=True, name="uniq_users_uid")
    await db[USERS].create_index(
        [("role", ASCENDING), ("is_active", ASCENDING), ("full_name", ASCENDING)],
        name="idx_users_role_active_name",
    )
    await db[STUDENT_PROFILES].create_index(
        [("user_uid", ASCENDING)], unique=True, name="uniq_student_profiles_user_uid"
    )
    await db[GROUPS].create_index(
        [("project_id", ASCENDING), ("status", ASCENDING), ("created_at", DESCENDING)],
        name="idx_groups_project_status_created_at",
    )
    await db[GROUP_MEMBERS].create_index(
        [("group_id", ASCENDING), ("user_uid", ASCENDING)],
        unique=True,
        name="uniq_group_members_group_user",
    )
    await db[GROUP_MEMBERS].create_index(
        [("user_uid", ASCENDING)], name="idx_group_members_user_uid"
    )
