"""
Admin Panel Router
User management & dashboard stats
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field

from learnhub.admin.analytics import get_dashboard_stats
from learnhub.auth.dependencies import require_admin, ROLE_INSTRUCTOR
from learnhub.core.models import ACTIVE_ENROLLMENT_STATUSES
from learnhub.courses.database import refresh_course_rating
from learnhub.db import get_db
from learnhub.notifications.service import notify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin Panel"])


class UserStatusUpdate(BaseModel):
    status: str = Field(..., pattern="^(active|inactive|suspended)$")


class ApplicationDecision(BaseModel):
    status: str = Field(..., pattern="^(approved|rejected)$")


async def notify_instructor_approved(db: AsyncIOMotorDatabase, user_id: str):
    await notify(
        db, user_id,
        title="Instructor application approved",
        message="You can now create and publish courses",
        type="success"
    )

# ============================================================================
# DASHBOARD
# ============================================================================

@router.get("/dashboard/stats")
async def dashboard_stats(
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Get dashboard overview stats

    Returns:
    - User counts per role / status
    - Course counts, pending requests and instructor applications
    - Enrollment activity (1/7/30 days, last 6 months)
    - Per-course completion, quiz stats
    """
    stats = await get_dashboard_stats(db)
    return {"success": True, "stats": stats}

# ============================================================================
# USER MANAGEMENT
# ============================================================================

@router.get("/users")
async def list_users(
    role: Optional[str] = Query(None, pattern="^(student|instructor|admin)$"),
    status: Optional[str] = Query(None, pattern="^(active|inactive|suspended|pending)$"),
    search: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    query = {}
    if role:
        query["role"] = role
    if status:
        query["status"] = status
    if search:
        query["$or"] = [
            {"name": {"$regex": search, "$options": "i"}},
            {"email": {"$regex": search, "$options": "i"}},
        ]

    cursor = db.users.find(query, {"_id": 0, "password_hash": 0}) \
        .sort("created_at", -1) \
        .skip(skip) \
        .limit(limit)
    users = await cursor.to_list(length=limit)
    total = await db.users.count_documents(query)

    return {
        "success": True,
        "users": users,
        "total": total,
        "skip": skip,
        "limit": limit
    }


@router.put("/users/{user_id}/status")
async def update_user_status(
    user_id: str,
    data: UserStatusUpdate,
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Activate, deactivate or suspend an account
    Activating a pending instructor approves their application
    """
    if user_id == admin["user_id"]:
        raise HTTPException(status_code=400, detail="Cannot change your own status")

    user = await db.users.find_one({"user_id": user_id}, {"_id": 0, "password_hash": 0})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    await db.users.update_one(
        {"user_id": user_id},
        {"$set": {"status": data.status, "updated_at": datetime.utcnow()}}
    )

    if user.get("role") == ROLE_INSTRUCTOR and user.get("status") == "pending" and data.status == "active":
        await notify_instructor_approved(db, user_id)

    logger.info("Admin %s set user %s status to %s", admin["user_id"], user_id, data.status)
    return {"success": True, "user_id": user_id, "status": data.status}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    **DANGER:** Delete user completely

    Deletes from:
    - users
    - enrollments (course student counts adjusted)
    - enrollment_requests
    - quiz_submissions
    - reviews (course ratings refreshed)
    - notifications
    """
    if user_id == admin["user_id"]:
        raise HTTPException(status_code=400, detail="Admins cannot delete themselves")

    user = await db.users.find_one({"user_id": user_id}, {"_id": 0})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    try:
        active = await db.enrollments.find(
            {"user_id": user_id, "status": {"$in": ACTIVE_ENROLLMENT_STATUSES}},
            {"_id": 0, "course_id": 1}
        ).to_list(length=None)
        for enr in active:
            await db.courses.update_one(
                {"course_id": enr["course_id"], "students": {"$gt": 0}},
                {"$inc": {"students": -1}}
            )

        reviewed = await db.reviews.distinct("course_id", {"student_id": user_id})

        deleted = {
            "enrollments": (await db.enrollments.delete_many({"user_id": user_id})).deleted_count,
            "enrollment_requests": (await db.enrollment_requests.delete_many({"user_id": user_id})).deleted_count,
            "quiz_submissions": (await db.quiz_submissions.delete_many({"user_id": user_id})).deleted_count,
            "reviews": (await db.reviews.delete_many({"student_id": user_id})).deleted_count,
            "notifications": (await db.notifications.delete_many({"user_id": user_id})).deleted_count,
        }
        for course_id in reviewed:
            await refresh_course_rating(db, course_id)

        await db.users.delete_one({"user_id": user_id})
    except Exception as e:
        logger.exception("Deleting user %s failed", user_id)
        raise HTTPException(status_code=500, detail=str(e))

    logger.warning("Admin %s deleted user %s (%s)", admin["user_id"], user_id, deleted)
    return {
        "success": True,
        "message": f"User {user_id} deleted completely",
        "deleted": deleted
    }

# ============================================================================
# INSTRUCTOR APPLICATIONS
# ============================================================================

@router.get("/instructor-applications")
async def list_instructor_applications(
    status: str = Query("pending", pattern="^(pending|active|inactive|suspended)$"),
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Instructor accounts with their application profile, newest first"""
    cursor = db.users.find(
        {"role": ROLE_INSTRUCTOR, "status": status},
        {"_id": 0, "user_id": 1, "name": 1, "email": 1, "status": 1,
         "bio": 1, "instructor_profile": 1, "created_at": 1}
    ).sort("created_at", -1)
    applications = await cursor.to_list(length=None)
    return {"applications": applications, "count": len(applications)}


@router.put("/instructor-applications/{user_id}")
async def decide_instructor_application(
    user_id: str,
    data: ApplicationDecision,
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Approve or reject a pending instructor

    Approval activates the account. Rejection deletes the account, which
    cannot own courses yet while it is pending.
    """
    applicant = await db.users.find_one({"user_id": user_id, "role": ROLE_INSTRUCTOR}, {"_id": 0})
    if not applicant:
        raise HTTPException(status_code=404, detail="Instructor not found")
    if applicant.get("status") != "pending":
        raise HTTPException(status_code=409, detail=f"Application already decided ({applicant.get('status')})")

    if data.status == "approved":
        await db.users.update_one(
            {"user_id": user_id, "status": "pending"},
            {"$set": {"status": "active", "updated_at": datetime.utcnow()}}
        )
        await notify_instructor_approved(db, user_id)
        logger.info("Admin %s approved instructor %s", admin["user_id"], user_id)
        return {"success": True, "message": "Instructor application approved", "status": "active"}

    await db.notifications.delete_many({"user_id": user_id})
    await db.users.delete_one({"user_id": user_id, "status": "pending"})
    logger.info("Admin %s rejected instructor %s", admin["user_id"], user_id)
    return {"success": True, "message": "Instructor application rejected and record deleted"}
