from datetime import datetime, timedelta

from learnhub.admin.analytics import get_dashboard_stats, month_starts
from learnhub.courses.database import create_course
from learnhub.enrollments.database import enroll_user, get_enrollment
from learnhub.maintenance import backfill_progress, build_parser, cleanup_orphans

from conftest import roadmap

INSTRUCTOR = {"user_id": "USR_INSTRUCT0001", "name": "Ines"}


async def seed(db):
    await db.users.insert_many([
        {"user_id": "USR_INSTRUCT0001", "name": "Ines", "email": "t@example.com", "role": "instructor", "status": "active"},
        {"user_id": "USR_STUDENT00001", "name": "Alice", "email": "a@example.com", "role": "student", "status": "active"},
    ])
    return await create_course(db, {
        "title": "Python Basics",
        "description": "Learn the basics",
        "level": "Beginner",
        "category": "Programming",
        "language": "English",
        "roadmap": roadmap(4),
    }, INSTRUCTOR)


class TestCleanupOrphans:
    async def test_dry_run_only_counts(self, db):
        course = await seed(db)
        await enroll_user(db, course["course_id"], "USR_GONE00000001")
        await db.notifications.insert_one({"notification_id": "NTF_1", "user_id": "USR_GONE00000001"})

        counts = await cleanup_orphans(db, dry_run=True)

        assert counts["enrollments.user_id"] == 1
        assert counts["notifications.user_id"] == 1
        assert await db.enrollments.count_documents({}) == 1

    async def test_deletes_orphans_and_keeps_valid_records(self, db):
        course = await seed(db)
        await enroll_user(db, course["course_id"], "USR_STUDENT00001")
        await enroll_user(db, "COURSE_GONE0000001", "USR_STUDENT00001")
        await db.discussions.insert_one({"discussion_id": "DISC_1", "course_id": "COURSE_GONE0000001"})
        await db.quiz_submissions.insert_one({
            "submission_id": "QSUB_1", "user_id": "USR_STUDENT00001", "course_url": "missing-course",
            "day_number": 1, "attempt_number": 1, "score": 50, "is_completed": True,
        })

        counts = await cleanup_orphans(db)

        assert counts["enrollments.course_id"] == 1
        assert counts["discussions.course_id"] == 1
        assert counts["quiz_submissions.course_url"] == 1
        assert await get_enrollment(db, course["course_id"], "USR_STUDENT00001") is not None

        again = await cleanup_orphans(db)
        assert sum(again.values()) == 0


class TestBackfillProgress:
    async def test_rederives_stored_progress(self, db):
        course = await seed(db)
        await db.enrollments.insert_one({
            "enrollment_id": "ENR_LEGACY000001",
            "course_id": course["course_id"],
            "user_id": "USR_STUDENT00001",
            "status": "enrolled",
            "completed_days": [1, 2, 4],
            "progress": 75.0,
            "enrolled_at": datetime(2024, 1, 1),
        })

        changed = await backfill_progress(db)

        assert changed == 1
        stored = await get_enrollment(db, course["course_id"], "USR_STUDENT00001")
        assert stored["completed_days"] == [1, 2]
        assert stored["progress"] == 50
        assert stored["status"] == "started"
        assert stored["version"] == 1

        assert await backfill_progress(db) == 0

    async def test_adds_missing_version(self, db):
        course = await seed(db)
        await db.enrollments.insert_one({
            "enrollment_id": "ENR_LEGACY000002",
            "course_id": course["course_id"],
            "user_id": "USR_STUDENT00001",
            "status": "started",
            "completed_days": [1],
            "progress": 25,
            "last_accessed_at": datetime(2024, 1, 2),
        })

        assert await backfill_progress(db) == 1
        stored = await get_enrollment(db, course["course_id"], "USR_STUDENT00001")
        assert stored["version"] == 1
        assert stored["progress"] == 25


def test_parser_commands():
    parser = build_parser()
    assert parser.parse_args(["orphans", "--dry-run"]).dry_run is True
    assert parser.parse_args(["backfill-progress"]).command == "backfill-progress"


def test_month_starts_cross_year():
    starts = month_starts(datetime(2024, 2, 15), months=4)
    assert starts == [datetime(2023, 11, 1), datetime(2023, 12, 1), datetime(2024, 1, 1), datetime(2024, 2, 1)]


async def test_dashboard_stats(db):
    course = await seed(db)
    now = datetime.utcnow()
    await enroll_user(db, course["course_id"], "USR_STUDENT00001")
    await db.enrollments.update_one(
        {"user_id": "USR_STUDENT00001"},
        {"$set": {"status": "completed", "progress": 100, "completed_days": [1, 2, 3, 4]}}
    )
    await db.users.insert_one({"user_id": "USR_INSTRUCT0002", "name": "New", "role": "instructor", "status": "pending"})
    await db.quiz_submissions.insert_many([
        {"submission_id": "QSUB_1", "user_id": "USR_STUDENT00001", "course_url": course["course_url"],
         "day_number": 1, "attempt_number": 1, "score": 80, "is_completed": True},
        {"submission_id": "QSUB_2", "user_id": "USR_STUDENT00001", "course_url": course["course_url"],
         "day_number": 1, "attempt_number": 2, "score": 100, "is_completed": True},
    ])

    stats = await get_dashboard_stats(db, now=now + timedelta(seconds=1))

    assert stats["user_stats"]["total_users"] == 3
    assert stats["user_stats"]["total_instructors"] == 2
    assert stats["pending"]["instructor_applications"] == 1
    assert stats["enrollments"]["daily"] == 1
    assert stats["monthly_enrollments"][-1]["enrollments"] == 1
    assert len(stats["monthly_enrollments"]) == 6
    assert stats["course_completion"][0]["completion_rate"] == 100.0
    assert stats["course_completion"][0]["average_progress"] == 100.0
    assert stats["quiz_stats"]["average_attempt_score"] == 90.0
    assert stats["quiz_stats"]["average_quiz_points"] == 90.0
