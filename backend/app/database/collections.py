from motor.motor_asyncio import AsyncIOMotorCollection

from app.database.connection import get_db

USERS = "users"
STUDENT_PROFILES = "student_profiles"
GROUPS = "groups"
GROUP_MEMBERS = "group_members"


def get_collection(name: str) -> AsyncIOMotorCollection:
    return get_db()[name]
