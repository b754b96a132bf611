"""
Enrollment Router
Direct enrollment, payment-verified enrollment requests, and day-by-day progress
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from learnhub.auth.dependencies import get_current_user_id, require_instructor, ROLE_ADMIN
from learnhub.core.errors import ProgressError, ConcurrentUpdateError
from learnhub.core.models import ACTIVE_ENROLLMENT_STATUSES, EnrollmentStatus
from learnhub.courses.database import get_course, get_roadmap_length, public_course
from learnhub.db import get_db
from learnhub.enrollments.database import (
    enroll_user, get_enrollment, get_user_enrollments, create_enrollment_request
)
from learnhub.enrollments.models import EnrollmentCreate, EnrollmentRequestCreate, DayProgressUpdate
from learnhub.enrollments.progress_service import update_day_completion

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Enrollments"])


def enrollment_view(enrollment: dict) -> dict:
    return {
        "enrollment_id": enrollment.get("enrollment_id"),
        "user_id": enrollment["user_id"],
        "course_id": enrollment["course_id"],
        "status": enrollment["status"],
        "progress": enrollment.get("progress", 0),
        "completed_days": enrollment.get("completed_days", []),
        "enrolled_at": enrollment.get("enrolled_at"),
        "last_accessed_at": enrollment.get("last_accessed_at"),
    }

# ==================== ENROLLMENT ENDPOINTS ====================

@router.post("/enrollments", status_code=201)
async def enroll_endpoint(
    data: EnrollmentCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Enroll directly in an active course"""
    course = await get_course(db, data.course_id)
    if not course or not course.get("is_active", True):
        raise HTTPException(status_code=404, detail="Course not found")

    existing = await get_enrollment(db, course["course_id"], user_id)
    if existing:
        raise HTTPException(status_code=409, detail="Already enrolled in this course")

    try:
        enrollment = await enroll_user(db, course["course_id"], user_id)
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail="Already enrolled in this course")
    logger.info("User %s enrolled in %s", user_id, course["course_id"])

    return {
        "success": True,
        "message": "Successfully enrolled",
        "enrollment": enrollment_view(enrollment)
    }


@router.post("/enrollment-requests", status_code=201)
async def submit_enrollment_request(
    data: EnrollmentRequestCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """
    Submit payment details for manual verification
    Creates a pending enrollment until an admin approves
    """
    course = await get_course(db, data.course_id)
    if not course or not course.get("is_active", True):
        raise HTTPException(status_code=404, detail="Course not found")

    existing = await get_enrollment(db, course["course_id"], user_id)
    if existing and existing["status"] in ACTIVE_ENROLLMENT_STATUSES:
        raise HTTPException(status_code=409, detail="Already enrolled in this course")

    duplicate = await db.enrollment_requests.find_one({
        "user_id": user_id,
        "course_id": course["course_id"],
        "status": "pending",
        "is_deleted": False
    })
    if duplicate:
        raise HTTPException(status_code=409, detail="An enrollment request for this course is already pending")

    request = await create_enrollment_request(db, user_id, course, data.model_dump())

    return {
        "success": True,
        "message": "Enrollment request submitted successfully",
        "enrollment_request": request
    }


@router.get("/my-courses")
async def get_my_courses(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """All of the user's enrollments (pending included) with course summaries"""
    enrollments = await get_user_enrollments(db, user_id)

    result = []
    for enr in enrollments:
        course = await get_course(db, enr["course_id"])
        if not course:
            continue
        result.append({
            **enrollment_view(enr),
            "course": public_course(course, include_roadmap=False),
            "total_days": get_roadmap_length(course),
        })

    return {"enrollments": result, "count": len(result)}


@router.get("/student/enrolled-courses")
async def get_enrolled_courses(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Active enrollments with roadmap and completed days"""
    enrollments = await get_user_enrollments(db, user_id, ACTIVE_ENROLLMENT_STATUSES)

    courses = []
    for enr in enrollments:
        course = await get_course(db, enr["course_id"])
        if not course:
            continue
        view = public_course(course)
        courses.append({
            "course_id": course["course_id"],
            "course_url": course["course_url"],
            "title": course["title"],
            "description": course["description"],
            "instructor_name": course.get("instructor_name"),
            "roadmap": view["roadmap"],
            "completed_days": enr.get("completed_days", []),
            "progress": enr.get("progress", 0),
            "status": enr["status"],
        })

    return {"data": courses, "count": len(courses)}


@router.get("/student/instructors")
async def get_my_instructors(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Instructor contact for each course the student is actively enrolled in"""
    enrollments = await get_user_enrollments(db, user_id, ACTIVE_ENROLLMENT_STATUSES)
    courses = await db.courses.find(
        {"course_id": {"$in": [e["course_id"] for e in enrollments]}},
        {"_id": 0, "course_id": 1, "title": 1, "instructor_id": 1}
    ).to_list(length=None)

    instructors = await db.users.find(
        {"user_id": {"$in": list({c["instructor_id"] for c in courses})}},
        {"_id": 0, "user_id": 1, "name": 1, "email": 1}
    ).to_list(length=None)
    instructor_map = {u["user_id"]: u for u in instructors}

    result = []
    for course in courses:
        instructor = instructor_map.get(course["instructor_id"])
        if not instructor:
            continue
        result.append({
            "course_id": course["course_id"],
            "course_title": course.get("title") or "Untitled Course",
            "instructor": instructor,
        })

    return {"instructors": result, "count": len(result)}


@router.put("/my-courses/{course_id}/days/{day}")
async def update_day_progress(
    course_id: str,
    day: int,
    data: DayProgressUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """
    Mark a roadmap day complete (completed=true) or incomplete (completed=false)

    400: out of order, sequence violation, invalid day, pending enrollment
    409: concurrent updates kept conflicting
    """
    try:
        enrollment = await update_day_completion(db, user_id, course_id, day, data.completed)
    except ProgressError as e:
        raise HTTPException(status_code=400, detail=e.to_detail())
    except ConcurrentUpdateError as e:
        raise HTTPException(status_code=409, detail={"code": e.code, "message": str(e)})

    return {
        "success": True,
        "message": "Progress updated successfully",
        "enrollment": enrollment_view(enrollment.model_dump(mode="json"))
    }

# ==================== INSTRUCTOR VIEW ====================

@router.get("/instructor/students")
async def get_instructor_students(
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: dict = Depends(require_instructor)
):
    """Students enrolled in the instructor's courses (all courses for admins)"""
    query = {} if instructor["role"] == ROLE_ADMIN else {"instructor_id": instructor["user_id"]}
    courses = await db.courses.find(query, {"_id": 0, "course_id": 1, "title": 1}).to_list(length=None)
    titles = {c["course_id"]: c["title"] for c in courses}

    enrollments = await db.enrollments.find(
        {"course_id": {"$in": list(titles)}, "status": {"$ne": EnrollmentStatus.PENDING.value}},
        {"_id": 0}
    ).to_list(length=None)

    user_ids = list({e["user_id"] for e in enrollments})
    users = await db.users.find(
        {"user_id": {"$in": user_ids}}, {"_id": 0, "user_id": 1, "name": 1, "email": 1, "avatar": 1}
    ).to_list(length=None)
    user_map = {u["user_id"]: u for u in users}

    students = []
    for enr in enrollments:
        user = user_map.get(enr["user_id"])
        if not user:
            continue
        students.append({
            **user,
            "course_id": enr["course_id"],
            "course_title": titles[enr["course_id"]],
            "progress": enr.get("progress", 0),
            "status": enr["status"],
            "last_accessed_at": enr.get("last_accessed_at"),
        })

    return {"students": students, "count": len(students)}
