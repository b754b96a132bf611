import pytest
from fastapi import HTTPException
from pymongo.errors import DuplicateKeyError

from learnhub.core.errors import ConcurrentUpdateError, OutOfOrderError
from learnhub.core.models import Enrollment, EnrollmentStatus
from learnhub.courses.database import create_course, replace_roadmap
from learnhub.enrollments import database as enrollment_db, progress_service
from learnhub.enrollments.database import (
    activate_enrollment,
    enroll_user,
    get_enrollment,
    save_progress_if_unchanged,
)
from learnhub.enrollments.progress_service import (
    reconcile_course_enrollments,
    update_day_completion,
)

from conftest import roadmap

STUDENT = "USR_STUDENT00001"
INSTRUCTOR = {"user_id": "USR_INSTRUCT0001", "name": "Ines"}


async def new_course(db, days=4):
    return await create_course(db, {
        "title": "Python Basics",
        "description": "Learn the basics",
        "level": "Beginner",
        "category": "Programming",
        "language": "English",
        "roadmap": roadmap(days),
    }, INSTRUCTOR)


class TestSaveProgressIfUnchanged:
    async def test_writes_and_bumps_version(self, db):
        course = await new_course(db)
        doc = await enroll_user(db, course["course_id"], STUDENT)

        updated = Enrollment.from_document(doc).model_copy(update={"completed_days": [1], "progress": 25})
        assert await save_progress_if_unchanged(db, doc, updated)

        stored = await get_enrollment(db, course["course_id"], STUDENT)
        assert stored["progress"] == 25
        assert stored["version"] == 1

    async def test_stale_read_is_rejected(self, db):
        course = await new_course(db)
        doc = await enroll_user(db, course["course_id"], STUDENT)
        await db.enrollments.update_one({"enrollment_id": doc["enrollment_id"]}, {"$inc": {"version": 1}})

        updated = Enrollment.from_document(doc).model_copy(update={"completed_days": [1], "progress": 25})
        assert not await save_progress_if_unchanged(db, doc, updated)

        stored = await get_enrollment(db, course["course_id"], STUDENT)
        assert stored["progress"] == 0

    async def test_legacy_document_without_version(self, db):
        course = await new_course(db)
        doc = await enroll_user(db, course["course_id"], STUDENT)
        await db.enrollments.update_one({"enrollment_id": doc["enrollment_id"]}, {"$unset": {"version": ""}})
        legacy = await get_enrollment(db, course["course_id"], STUDENT)

        updated = Enrollment.from_document(legacy).model_copy(update={"completed_days": [1], "progress": 25})
        assert await save_progress_if_unchanged(db, legacy, updated)

        stored = await get_enrollment(db, course["course_id"], STUDENT)
        assert stored["version"] == 1


class TestUpdateDayCompletion:
    async def test_mark_and_unmark(self, db):
        course = await new_course(db)
        await enroll_user(db, course["course_id"], STUDENT)

        await update_day_completion(db, STUDENT, course["course_id"], 1, True)
        result = await update_day_completion(db, STUDENT, course["course_id"], 2, True)
        assert result.completed_days == [1, 2]
        assert result.progress == 50
        assert result.status == EnrollmentStatus.STARTED
        assert result.version == 2

        result = await update_day_completion(db, STUDENT, course["course_id"], 2, False)
        assert result.completed_days == [1]

        stored = await get_enrollment(db, course["course_id"], STUDENT)
        assert stored["completed_days"] == [1]
        assert stored["progress"] == 25
        assert stored["status"] == "started"

    async def test_course_url_is_accepted(self, db):
        course = await new_course(db)
        await enroll_user(db, course["course_id"], STUDENT)
        result = await update_day_completion(db, STUDENT, course["course_url"], 1, True)
        assert result.progress == 25

    async def test_validation_errors_propagate(self, db):
        course = await new_course(db)
        await enroll_user(db, course["course_id"], STUDENT)
        with pytest.raises(OutOfOrderError):
            await update_day_completion(db, STUDENT, course["course_id"], 3, True)

    async def test_missing_enrollment(self, db):
        course = await new_course(db)
        with pytest.raises(HTTPException) as exc:
            await update_day_completion(db, STUDENT, course["course_id"], 1, True)
        assert exc.value.status_code == 404

    async def test_missing_course(self, db):
        with pytest.raises(HTTPException) as exc:
            await update_day_completion(db, STUDENT, "COURSE_MISSING", 1, True)
        assert exc.value.status_code == 404

    async def test_conflict_is_retried(self, db, monkeypatch):
        course = await new_course(db)
        doc = await enroll_user(db, course["course_id"], STUDENT)
        await update_day_completion(db, STUDENT, course["course_id"], 1, True)
        real_save = progress_service.save_progress_if_unchanged
        calls = []

        async def racing_save(database, original, updated):
            calls.append(original["version"])
            if len(calls) == 1:
                # another device completes days 2 and 3 in between
                await database.enrollments.update_one(
                    {"enrollment_id": doc["enrollment_id"]},
                    {"$set": {"completed_days": [1, 2, 3], "progress": 75, "status": "started"}, "$inc": {"version": 1}}
                )
            return await real_save(database, original, updated)

        monkeypatch.setattr(progress_service, "save_progress_if_unchanged", racing_save)

        result = await update_day_completion(db, STUDENT, course["course_id"], 2, True)

        assert calls == [1, 2]
        assert result.completed_days == [1, 2, 3]
        stored = await get_enrollment(db, course["course_id"], STUDENT)
        assert stored["completed_days"] == [1, 2, 3]
        assert stored["progress"] == 75
        assert stored["version"] == 3

    async def test_conflict_retries_exhausted(self, db, monkeypatch):
        course = await new_course(db)
        await enroll_user(db, course["course_id"], STUDENT)

        async def always_stale(database, original, updated):
            return False

        monkeypatch.setattr(progress_service, "save_progress_if_unchanged", always_stale)

        with pytest.raises(ConcurrentUpdateError):
            await update_day_completion(db, STUDENT, course["course_id"], 1, True, max_retries=3)


class TestReconcileCourseEnrollments:
    async def test_roadmap_shrink(self, db):
        course = await new_course(db, days=4)
        for n in range(1, 4):
            user_id = f"USR_STUDENT0000{n}"
            await enroll_user(db, course["course_id"], user_id)
            for day in range(1, n + 1):
                await update_day_completion(db, user_id, course["course_id"], day, True)

        total = await replace_roadmap(db, course["course_id"], roadmap(2))
        changed = await reconcile_course_enrollments(db, course["course_id"], total)

        assert changed == 3
        first = await get_enrollment(db, course["course_id"], "USR_STUDENT00001")
        third = await get_enrollment(db, course["course_id"], "USR_STUDENT00003")
        assert (first["progress"], first["status"]) == (50, "started")
        assert (third["completed_days"], third["progress"], third["status"]) == ([1, 2], 100, "completed")

    async def test_unchanged_enrollments_not_written(self, db):
        course = await new_course(db, days=4)
        await enroll_user(db, course["course_id"], STUDENT)
        await update_day_completion(db, STUDENT, course["course_id"], 1, True)

        changed = await reconcile_course_enrollments(db, course["course_id"], 4)

        assert changed == 0
        stored = await get_enrollment(db, course["course_id"], STUDENT)
        assert stored["version"] == 1


class TestEnrollmentInserts:
    async def test_second_enrollment_rejected_by_index(self, db):
        course = await new_course(db)
        await enroll_user(db, course["course_id"], STUDENT)
        with pytest.raises(DuplicateKeyError):
            await enroll_user(db, course["course_id"], STUDENT)

    async def test_activate_after_concurrent_insert(self, db, monkeypatch):
        course = await new_course(db)
        await enroll_user(db, course["course_id"], STUDENT, EnrollmentStatus.PENDING)

        lookups = []

        async def stale_then_fresh(database, course_id, user_id):
            lookups.append(course_id)
            if len(lookups) == 1:
                return None
            return await get_enrollment(database, course_id, user_id)

        monkeypatch.setattr(enrollment_db, "get_enrollment", stale_then_fresh)
        enrollment = await activate_enrollment(db, course["course_id"], STUDENT)

        assert enrollment["status"] == "enrolled"
        assert await db.enrollments.count_documents({"user_id": STUDENT}) == 1
        stored_course = await db.courses.find_one({"course_id": course["course_id"]})
        assert stored_course["students"] == 1

    async def test_activate_twice_counts_student_once(self, db):
        course = await new_course(db)
        await enroll_user(db, course["course_id"], STUDENT, EnrollmentStatus.PENDING)

        await activate_enrollment(db, course["course_id"], STUDENT)
        await activate_enrollment(db, course["course_id"], STUDENT)

        stored_course = await db.courses.find_one({"course_id": course["course_id"]})
        assert stored_course["students"] == 1
