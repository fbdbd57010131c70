from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.database.collections import USERS, get_collection
from app.utils.firebase_verify import verify_firebase_token

security = HTTPBearer()

STAFF_ROLES = ("teacher", "admin")


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> dict:
    """
    Dependency to get current authenticated user from Firebase token

    Raises:
        HTTPException: If token is invalid or user not found
    """
    token_data = await verify_firebase_token(credentials.credentials)

    users_collection = get_collection(USERS)
    user = await users_collection.find_one(
        {"uid": token_data["uid"]},
        sort=[("updated_at", -1), ("_id", -1)],
    )

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found in database"
        )
    if user.get("is_active") is False:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated"
        )

    return user


async def get_current_staff(
    current_user: dict = Depends(get_current_user)
) -> dict:
    """Only teachers and admins may form or manage groups."""
    if current_user.get("role") not in STAFF_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )
    return current_user
