"""
Instructor Profile Router
Pending instructors can fill in their profile while their application is reviewed
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field

from learnhub.auth.dependencies import get_current_user, ROLE_INSTRUCTOR
from learnhub.db import get_db
from learnhub.instructors.profile import instructor_profile, profile_completion, teaching_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/instructor", tags=["Instructor Profile"])


class SocialLinksUpdate(BaseModel):
    linkedin: Optional[str] = Field(None, max_length=300)
    twitter: Optional[str] = Field(None, max_length=300)
    website: Optional[str] = Field(None, max_length=300)


class InstructorProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    display_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=1000)
    avatar: Optional[str] = None
    specialty: Optional[str] = Field(None, max_length=200)
    experience: Optional[int] = Field(None, ge=0, le=80)
    phone: Optional[str] = Field(None, max_length=30)
    location: Optional[str] = Field(None, max_length=200)
    social_links: Optional[SocialLinksUpdate] = None


async def require_instructor_account(user: dict = Depends(get_current_user)) -> dict:
    """Any instructor account, pending or active"""
    if user.get("role") != ROLE_INSTRUCTOR:
        raise HTTPException(status_code=403, detail="Access denied. Only instructors have a profile.")
    return user


def profile_view(user: dict) -> dict:
    return {
        "user_id": user["user_id"],
        "name": user.get("name"),
        "email": user.get("email"),
        "display_name": user.get("display_name") or "Instructor",
        "status": user.get("status"),
        "bio": user.get("bio") or "",
        "avatar": user.get("avatar") or "",
        "created_at": user.get("created_at"),
        "instructor_profile": instructor_profile(user),
        "profile_completion": profile_completion(user),
    }


@router.get("/profile")
async def get_instructor_profile(
    user: dict = Depends(require_instructor_account),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return {**profile_view(user), "stats": await teaching_stats(db, user["user_id"])}


@router.put("/profile")
async def update_instructor_profile(
    data: InstructorProfileUpdate,
    user: dict = Depends(require_instructor_account),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Only the fields sent are changed; social links merge key by key"""
    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    updates = {}
    for key in ("name", "display_name", "bio", "avatar"):
        if key in changes:
            updates[key] = changes.pop(key)
    for key, value in changes.pop("social_links", {}).items():
        updates[f"instructor_profile.social_links.{key}"] = value
    for key, value in changes.items():
        updates[f"instructor_profile.{key}"] = value
    updates["updated_at"] = datetime.utcnow()

    await db.users.update_one({"user_id": user["user_id"]}, {"$set": updates})
    logger.info("Instructor %s updated profile fields %s", user["user_id"], sorted(updates))

    updated = await db.users.find_one({"user_id": user["user_id"]}, {"_id": 0, "password_hash": 0})
    return {"success": True, "message": "Profile updated successfully", "user": profile_view(updated)}
