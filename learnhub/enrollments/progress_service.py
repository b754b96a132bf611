"""
Enrollment progress persistence
Applies the completion tracker to stored enrollments without losing concurrent writes

Each change is a read-modify-write of completed_days/progress/status. The
write only lands if the enrollment's version is still the one that was read;
otherwise the enrollment is re-read and the change re-applied.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.config import PROGRESS_UPDATE_MAX_RETRIES
from learnhub.core.errors import ConcurrentUpdateError
from learnhub.core.models import Enrollment
from learnhub.core.tracker import mark_day_complete, mark_day_incomplete, reconcile
from learnhub.courses.database import get_course, get_roadmap_length
from learnhub.enrollments.database import get_enrollment, save_progress_if_unchanged

logger = logging.getLogger(__name__)


async def update_day_completion(
    db: AsyncIOMotorDatabase,
    user_id: str,
    course_id: str,
    day: int,
    completed: bool,
    max_retries: int = PROGRESS_UPDATE_MAX_RETRIES,
    now: Optional[datetime] = None
) -> Enrollment:
    """
    Mark a day complete or incomplete for (user, course)

    Raises:
        HTTPException 404: course or enrollment missing
        ProgressError subclasses: ordering / day validation failures
        ConcurrentUpdateError: version check failed max_retries times
    """
    course = await get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    total_days = get_roadmap_length(course)

    for attempt in range(1, max_retries + 1):
        doc = await get_enrollment(db, course["course_id"], user_id)
        if not doc:
            raise HTTPException(status_code=404, detail="Enrollment not found")

        current = Enrollment.from_document(doc)
        if completed:
            updated = mark_day_complete(current, day, total_days, now=now)
        else:
            updated = mark_day_incomplete(current, day, total_days, now=now)

        if await save_progress_if_unchanged(db, doc, updated):
            return updated.model_copy(update={"version": current.version + 1})

        logger.warning(
            "Progress write conflict on %s (attempt %d/%d)",
            doc["enrollment_id"], attempt, max_retries
        )

    raise ConcurrentUpdateError(
        f"Enrollment for course {course_id} kept changing; try again"
    )


async def reconcile_enrollment(
    db: AsyncIOMotorDatabase,
    doc: dict,
    total_days: int,
    max_retries: int = PROGRESS_UPDATE_MAX_RETRIES
) -> bool:
    """
    Bring one stored enrollment in line with a roadmap of total_days
    Returns True if anything was written
    """
    for _ in range(max_retries):
        current = Enrollment.from_document(doc)
        updated = reconcile(current, total_days, now=datetime.utcnow())

        unchanged = (
            updated.progress_fields() == current.progress_fields()
            and "version" in doc
        )
        if unchanged:
            return False

        if await save_progress_if_unchanged(db, doc, updated):
            return True

        doc = await db.enrollments.find_one({"enrollment_id": doc["enrollment_id"]}, {"_id": 0})
        if not doc:
            return False

    raise ConcurrentUpdateError(f"Enrollment {doc['enrollment_id']} kept changing during reconcile")


async def reconcile_course_enrollments(db: AsyncIOMotorDatabase, course_id: str, total_days: int) -> int:
    """Re-derive progress of every enrollment in a course; returns number changed"""
    changed = 0
    docs = await db.enrollments.find({"course_id": course_id}, {"_id": 0}).to_list(length=None)
    for doc in docs:
        if await reconcile_enrollment(db, doc, total_days):
            changed += 1

    logger.info("Reconciled %d enrollments of %s to %d roadmap days", changed, course_id, total_days)
    return changed
