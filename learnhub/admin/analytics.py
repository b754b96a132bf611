"""
Analytics & Dashboard Stats for Admin Panel
Every figure is computed from stored data; progress and quiz points come from
the same functions the student views and the leaderboard use.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.core.models import ACTIVE_ENROLLMENT_STATUSES, EnrollmentStatus
from learnhub.core.progress import round_half_up
from learnhub.core.scoring import aggregate_quiz_score
from learnhub.quizzes.database import load_completed_submissions

logger = logging.getLogger(__name__)

MONTHS_OF_HISTORY = 6


def month_starts(now: datetime, months: int = MONTHS_OF_HISTORY) -> List[datetime]:
    """First instant of each of the last `months` months, oldest first"""
    year, month = now.year, now.month
    starts = []
    for _ in range(months):
        starts.append(datetime(year, month, 1))
        month -= 1
        if month == 0:
            month, year = 12, year - 1
    return list(reversed(starts))


async def get_user_stats(db: AsyncIOMotorDatabase) -> dict:
    total = await db.users.count_documents({})
    active = await db.users.count_documents({"status": "active"})
    return {
        "total_users": total,
        "total_students": await db.users.count_documents({"role": "student"}),
        "total_instructors": await db.users.count_documents({"role": "instructor"}),
        "total_admins": await db.users.count_documents({"role": "admin"}),
        "active_users": active,
        "inactive_users": total - active,
    }


async def get_enrollment_windows(db: AsyncIOMotorDatabase, now: datetime) -> dict:
    windows = {"daily": 1, "weekly": 7, "monthly": 30}
    return {
        name: await db.enrollments.count_documents({"enrolled_at": {"$gte": now - timedelta(days=days)}})
        for name, days in windows.items()
    }


async def get_monthly_enrollments(db: AsyncIOMotorDatabase, now: datetime) -> List[dict]:
    starts = month_starts(now)
    docs = await db.enrollments.find(
        {"enrolled_at": {"$gte": starts[0]}}, {"_id": 0, "enrolled_at": 1}
    ).to_list(length=None)

    counts = {(s.year, s.month): 0 for s in starts}
    for doc in docs:
        key = (doc["enrolled_at"].year, doc["enrolled_at"].month)
        if key in counts:
            counts[key] += 1

    return [
        {"month": f"{year:04d}-{month:02d}", "enrollments": count}
        for (year, month), count in counts.items()
    ]


async def get_course_completion(db: AsyncIOMotorDatabase) -> List[dict]:
    """Per active course: enrolled students, completions, completion rate, average progress"""
    courses = await db.courses.find(
        {"is_active": True}, {"_id": 0, "course_id": 1, "title": 1}
    ).to_list(length=None)
    enrollments = await db.enrollments.find(
        {"status": {"$in": ACTIVE_ENROLLMENT_STATUSES}},
        {"_id": 0, "course_id": 1, "status": 1, "progress": 1}
    ).to_list(length=None)

    by_course = {}
    for enr in enrollments:
        by_course.setdefault(enr["course_id"], []).append(enr)

    result = []
    for course in courses:
        rows = by_course.get(course["course_id"], [])
        completed = sum(1 for r in rows if r["status"] == EnrollmentStatus.COMPLETED.value)
        result.append({
            "course_id": course["course_id"],
            "title": course["title"],
            "enrolled": len(rows),
            "completed": completed,
            "completion_rate": round_half_up(100 * completed / len(rows), 1) if rows else 0.0,
            "average_progress": round_half_up(sum(r.get("progress", 0) for r in rows) / len(rows), 1) if rows else 0.0,
        })
    return result


async def get_quiz_stats(db: AsyncIOMotorDatabase) -> dict:
    submissions_by_user = await load_completed_submissions(db)
    scores = [s.score for subs in submissions_by_user.values() for s in subs]
    quiz_points = [aggregate_quiz_score(subs) for subs in submissions_by_user.values()]

    return {
        "total_submissions": len(scores),
        "students_with_submissions": len(submissions_by_user),
        "average_attempt_score": round_half_up(sum(scores) / len(scores), 1) if scores else 0.0,
        "average_quiz_points": round_half_up(sum(quiz_points) / len(quiz_points), 1) if quiz_points else 0.0,
    }


async def get_dashboard_stats(db: AsyncIOMotorDatabase, now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()

    stats = {
        "user_stats": await get_user_stats(db),
        "course_stats": {
            "total_courses": await db.courses.count_documents({}),
            "active_courses": await db.courses.count_documents({"is_active": True}),
        },
        "pending": {
            "enrollment_requests": await db.enrollment_requests.count_documents(
                {"status": "pending", "is_deleted": False}
            ),
            "instructor_applications": await db.users.count_documents(
                {"role": "instructor", "status": "pending"}
            ),
            "contact_requests": await db.contact_requests.count_documents({"status": "new"}),
        },
        "enrollments": await get_enrollment_windows(db, now),
        "monthly_enrollments": await get_monthly_enrollments(db, now),
        "course_completion": await get_course_completion(db),
        "quiz_stats": await get_quiz_stats(db),
        "generated_at": now,
    }

    logger.debug("Dashboard stats generated at %s", now.isoformat())
    return stats
