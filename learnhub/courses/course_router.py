import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.auth.dependencies import get_current_user, require_instructor, ROLE_ADMIN
from learnhub.core.errors import ConcurrentUpdateError
from learnhub.core.models import ACTIVE_ENROLLMENT_STATUSES
from learnhub.courses.database import (
    create_course, get_course, list_courses, update_course, replace_roadmap,
    delete_course, public_course, get_roadmap_length, upsert_review, list_reviews
)
from learnhub.courses.models import CourseCreate, CourseUpdate, RoadmapUpdate, ReviewCreate
from learnhub.db import get_db
from learnhub.enrollments.database import get_enrollment
from learnhub.enrollments.progress_service import reconcile_course_enrollments
from learnhub.notifications.service import notify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/courses", tags=["Courses"])


async def verify_course_owner(db: AsyncIOMotorDatabase, course_ref: str, user: dict) -> dict:
    course = await get_course(db, course_ref)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    if user.get("role") != ROLE_ADMIN and course["instructor_id"] != user["user_id"]:
        raise HTTPException(status_code=403, detail="Not authorized")

    return course

# ==================== CATALOG ====================

@router.get("")
async def get_courses(
    category: Optional[str] = None,
    level: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    filters = {"category": category, "level": level, "search": search}
    courses = await list_courses(db, filters, skip=skip, limit=limit)
    return {
        "courses": [
            {**public_course(c, include_roadmap=False), "total_days": get_roadmap_length(c)}
            for c in courses
        ],
        "count": len(courses)
    }


@router.get("/{course_ref}")
async def get_course_detail(course_ref: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Course by id or course_url, MCQ answers hidden"""
    course = await get_course(db, course_ref)
    if not course or not course.get("is_active", True):
        raise HTTPException(status_code=404, detail="Course not found")
    return {**public_course(course), "total_days": get_roadmap_length(course)}

# ==================== INSTRUCTOR MANAGEMENT ====================

@router.post("", status_code=201)
async def create_course_endpoint(
    data: CourseCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: dict = Depends(require_instructor)
):
    course = await create_course(db, data.model_dump(mode="json"), instructor)
    logger.info("Course %s created by %s", course["course_id"], instructor["user_id"])
    return {
        "success": True,
        "course_id": course["course_id"],
        "course_url": course["course_url"],
        "message": "Course created"
    }


@router.put("/{course_id}")
async def update_course_endpoint(
    course_id: str,
    data: CourseUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(require_instructor)
):
    course = await verify_course_owner(db, course_id, user)

    updates = data.model_dump(mode="json", exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    await update_course(db, course["course_id"], updates)
    return {"success": True, "message": "Course updated"}


@router.put("/{course_id}/roadmap")
async def update_roadmap_endpoint(
    course_id: str,
    data: RoadmapUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(require_instructor)
):
    """
    Replace the roadmap
    Every enrollment's progress is re-derived for the new number of days
    """
    course = await verify_course_owner(db, course_id, user)

    roadmap = [day.model_dump(mode="json") for day in data.roadmap]
    total_days = await replace_roadmap(db, course["course_id"], roadmap)

    try:
        reconciled = await reconcile_course_enrollments(db, course["course_id"], total_days)
    except ConcurrentUpdateError as e:
        raise HTTPException(status_code=409, detail={"code": e.code, "message": str(e)})

    learners = await db.enrollments.distinct(
        "user_id", {"course_id": course["course_id"], "status": {"$in": ACTIVE_ENROLLMENT_STATUSES}}
    )
    for learner_id in learners:
        await notify(
            db, learner_id,
            title="Course updated",
            message=f"The roadmap of {course['title']} now has {total_days} days.",
            type="course",
            link=f"/courses/{course['course_id']}"
        )

    return {
        "success": True,
        "message": "Roadmap updated",
        "total_days": total_days,
        "enrollments_updated": reconciled
    }


@router.delete("/{course_id}")
async def delete_course_endpoint(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(require_instructor)
):
    course = await verify_course_owner(db, course_id, user)
    removed = await delete_course(db, course["course_id"])
    return {"success": True, "message": "Course deleted", **removed}

# ==================== REVIEWS ====================

@router.post("/{course_id}/reviews", status_code=201)
async def add_review(
    course_id: str,
    data: ReviewCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    """Enrolled students review a course; a second review replaces the first"""
    course = await get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    enrollment = await get_enrollment(db, course["course_id"], user["user_id"])
    if not enrollment or enrollment["status"] not in ACTIVE_ENROLLMENT_STATUSES:
        raise HTTPException(status_code=403, detail="Only enrolled students can review this course")

    review = await upsert_review(db, course["course_id"], user, data.rating, data.comment)
    return {"success": True, "review": review}


@router.get("/{course_id}/reviews")
async def get_reviews(course_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    course = await get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    reviews = await list_reviews(db, course["course_id"])
    return {"reviews": reviews, "count": len(reviews), "rating": course.get("rating", 0.0)}
