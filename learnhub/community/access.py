from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.auth.dependencies import ROLE_ADMIN
from learnhub.core.models import ACTIVE_ENROLLMENT_STATUSES
from learnhub.courses.database import get_course


async def verify_course_member(db: AsyncIOMotorDatabase, course_ref: str, user: dict) -> dict:
    """
    Course instructor, admins, and actively enrolled students only
    Returns the course
    """
    course = await get_course(db, course_ref)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    if user.get("role") == ROLE_ADMIN or course["instructor_id"] == user["user_id"]:
        return course

    enrollment = await db.enrollments.find_one({
        "course_id": course["course_id"],
        "user_id": user["user_id"],
        "status": {"$in": ACTIVE_ENROLLMENT_STATUSES}
    })
    if not enrollment:
        raise HTTPException(status_code=403, detail="Not enrolled in this course")

    return course
