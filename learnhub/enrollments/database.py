import logging
from datetime import datetime
from typing import Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from learnhub.core.identifiers import new_id, ENROLLMENT_PREFIX, ENROLLMENT_REQUEST_PREFIX
from learnhub.core.models import Enrollment, EnrollmentStatus, ACTIVE_ENROLLMENT_STATUSES

logger = logging.getLogger(__name__)

# ==================== ENROLLMENT CRUD ====================

async def enroll_user(
    db: AsyncIOMotorDatabase,
    course_id: str,
    user_id: str,
    status: EnrollmentStatus = EnrollmentStatus.ENROLLED
) -> dict:
    """
    Create an enrollment; only active enrollments count towards course students

    Raises DuplicateKeyError if the user already has an enrollment for the course
    """
    now = datetime.utcnow()
    enrollment = {
        "enrollment_id": new_id(ENROLLMENT_PREFIX),
        "course_id": course_id,
        "user_id": user_id,
        "status": status.value,
        "completed_days": [],
        "progress": 0,
        "enrolled_at": now,
        "last_accessed_at": now,
        "version": 0,
    }
    await db.enrollments.insert_one(enrollment)
    enrollment.pop("_id", None)

    if status != EnrollmentStatus.PENDING:
        await db.courses.update_one({"course_id": course_id}, {"$inc": {"students": 1}})

    return enrollment


async def get_enrollment(db: AsyncIOMotorDatabase, course_id: str, user_id: str) -> Optional[dict]:
    return await db.enrollments.find_one({"course_id": course_id, "user_id": user_id}, {"_id": 0})


async def get_user_enrollments(
    db: AsyncIOMotorDatabase,
    user_id: str,
    statuses: Optional[List[str]] = None
) -> List[dict]:
    query = {"user_id": user_id}
    if statuses:
        query["status"] = {"$in": statuses}
    cursor = db.enrollments.find(query, {"_id": 0}).sort("enrolled_at", -1)
    return await cursor.to_list(length=None)


async def list_enrollments(db: AsyncIOMotorDatabase, course_ids: Optional[Iterable[str]] = None) -> List[Enrollment]:
    """All enrollments, optionally restricted to a set of courses"""
    query = {}
    if course_ids is not None:
        query["course_id"] = {"$in": list(course_ids)}
    docs = await db.enrollments.find(query, {"_id": 0}).to_list(length=None)
    return [Enrollment.from_document(doc) for doc in docs]


def _version_filter(doc: dict) -> dict:
    if "version" in doc:
        return {"version": doc["version"]}
    return {"version": {"$exists": False}}


async def save_progress_if_unchanged(db: AsyncIOMotorDatabase, original: dict, updated: Enrollment) -> bool:
    """
    Write progress fields only if nobody else wrote this enrollment since
    `original` was read. Returns False when the version check fails.
    """
    result = await db.enrollments.update_one(
        {"enrollment_id": original["enrollment_id"], **_version_filter(original)},
        {"$set": updated.progress_fields(), "$inc": {"version": 1}}
    )
    return result.matched_count == 1


async def activate_enrollment(db: AsyncIOMotorDatabase, course_id: str, user_id: str) -> dict:
    """
    Move a pending (or missing) enrollment to enrolled
    Active enrollments keep their status and progress
    """
    existing = await get_enrollment(db, course_id, user_id)
    if not existing:
        try:
            return await enroll_user(db, course_id, user_id, EnrollmentStatus.ENROLLED)
        except DuplicateKeyError:
            logger.info("Enrollment for %s in %s created concurrently", user_id, course_id)
            existing = await get_enrollment(db, course_id, user_id)

    if existing["status"] in ACTIVE_ENROLLMENT_STATUSES:
        return existing

    result = await db.enrollments.update_one(
        {"enrollment_id": existing["enrollment_id"], "status": EnrollmentStatus.PENDING.value},
        {"$set": {"status": EnrollmentStatus.ENROLLED.value, "enrolled_at": datetime.utcnow()},
         "$inc": {"version": 1}}
    )
    # only the writer that moved it out of pending counts the student
    if result.modified_count:
        await db.courses.update_one({"course_id": course_id}, {"$inc": {"students": 1}})
    return await get_enrollment(db, course_id, user_id)

# ==================== ENROLLMENT REQUESTS ====================

async def create_enrollment_request(db: AsyncIOMotorDatabase, user_id: str, course: dict, data: dict) -> dict:
    """
    Record a manual payment for review and hold a pending enrollment
    """
    now = datetime.utcnow()
    request = {
        "request_id": new_id(ENROLLMENT_REQUEST_PREFIX),
        "user_id": user_id,
        "course_id": course["course_id"],
        "course_name": course["title"],
        "email": data["email"],
        "mobile": data["mobile"],
        "utr_number": data["utr_number"],
        "screenshot_ref": data["screenshot_ref"],
        "status": "pending",
        "is_deleted": False,
        "deleted_at": None,
        "reviewed_by": None,
        "reviewed_at": None,
        "created_at": now,
        "updated_at": now,
    }
    await db.enrollment_requests.insert_one(request)
    request.pop("_id", None)

    existing = await get_enrollment(db, course["course_id"], user_id)
    if not existing:
        try:
            await enroll_user(db, course["course_id"], user_id, EnrollmentStatus.PENDING)
        except DuplicateKeyError:
            logger.info("Enrollment for %s in %s already exists", user_id, course["course_id"])

    return request


async def get_enrollment_request(db: AsyncIOMotorDatabase, request_id: str) -> Optional[dict]:
    return await db.enrollment_requests.find_one({"request_id": request_id}, {"_id": 0})


async def list_enrollment_requests(
    db: AsyncIOMotorDatabase,
    status: Optional[str] = None,
    deleted: bool = False
) -> List[dict]:
    query = {"is_deleted": deleted}
    if status:
        query["status"] = status
    sort_field = "deleted_at" if deleted else "created_at"
    cursor = db.enrollment_requests.find(query, {"_id": 0}).sort(sort_field, -1)
    return await cursor.to_list(length=None)


async def set_request_status(db: AsyncIOMotorDatabase, request_id: str, status: str, admin_id: str) -> bool:
    """Only pending requests can be decided"""
    now = datetime.utcnow()
    result = await db.enrollment_requests.update_one(
        {"request_id": request_id, "status": "pending", "is_deleted": False},
        {"$set": {"status": status, "reviewed_by": admin_id, "reviewed_at": now, "updated_at": now}}
    )
    return result.modified_count > 0


async def reopen_request(db: AsyncIOMotorDatabase, request_id: str, status: str) -> bool:
    """Put a decided request back to pending, e.g. when its follow-up failed"""
    result = await db.enrollment_requests.update_one(
        {"request_id": request_id, "status": status},
        {"$set": {"status": "pending", "reviewed_by": None, "reviewed_at": None, "updated_at": datetime.utcnow()}}
    )
    return result.modified_count > 0


async def remove_pending_enrollment(db: AsyncIOMotorDatabase, course_id: str, user_id: str) -> bool:
    result = await db.enrollments.delete_one({
        "course_id": course_id,
        "user_id": user_id,
        "status": EnrollmentStatus.PENDING.value
    })
    return result.deleted_count > 0


async def soft_delete_requests(db: AsyncIOMotorDatabase, request_ids: List[str]) -> int:
    result = await db.enrollment_requests.update_many(
        {"request_id": {"$in": request_ids}, "is_deleted": False},
        {"$set": {"is_deleted": True, "deleted_at": datetime.utcnow()}}
    )
    return result.modified_count


async def restore_requests(db: AsyncIOMotorDatabase, request_ids: List[str]) -> int:
    result = await db.enrollment_requests.update_many(
        {"request_id": {"$in": request_ids}, "is_deleted": True},
        {"$set": {"is_deleted": False, "deleted_at": None}}
    )
    return result.modified_count


async def purge_requests(db: AsyncIOMotorDatabase, request_ids: List[str]) -> int:
    """Permanent delete; only requests already in the trash"""
    result = await db.enrollment_requests.delete_many(
        {"request_id": {"$in": request_ids}, "is_deleted": True}
    )
    return result.deleted_count
