from fastapi import Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.auth.auth_utils import verify_token
from learnhub.db import get_db

ROLE_STUDENT = "student"
ROLE_INSTRUCTOR = "instructor"
ROLE_ADMIN = "admin"

# ==================== DEPENDENCY FUNCTIONS ====================

async def get_current_user(
    token: dict = Depends(verify_token),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> dict:
    """
    Load the authenticated user's document

    Raises:
        401: user no longer exists
        403: account inactive or suspended
    """
    user = await db.users.find_one({"user_id": token["sub"]}, {"_id": 0, "password_hash": 0})
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if user.get("status") in ("inactive", "suspended"):
        raise HTTPException(status_code=403, detail=f"Account is {user['status']}")

    return user


async def get_current_user_id(user: dict = Depends(get_current_user)) -> str:
    return user["user_id"]


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="Access denied: Admin privileges required")
    return user


async def require_instructor(user: dict = Depends(get_current_user)) -> dict:
    """Instructors (active) and admins"""
    if user.get("role") not in (ROLE_INSTRUCTOR, ROLE_ADMIN):
        raise HTTPException(status_code=403, detail="Access denied: Instructor privileges required")
    if user.get("role") == ROLE_INSTRUCTOR and user.get("status") != "active":
        raise HTTPException(status_code=403, detail="Instructor application pending approval")
    return user
