"""
Instructor profile
Profile fields, completion and teaching statistics
"""

from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.core.progress import round_half_up
from learnhub.courses.database import get_roadmap_length

RECENT_REVIEWS_LIMIT = 5

SOCIAL_LINKS = ("linkedin", "twitter", "website")


def empty_profile() -> dict:
    return {
        "specialty": None,
        "experience": None,
        "phone": None,
        "location": None,
        "social_links": {key: None for key in SOCIAL_LINKS},
    }


def instructor_profile(user: dict) -> dict:
    stored = user.get("instructor_profile") or {}
    profile = {**empty_profile(), **stored}
    profile["social_links"] = {**empty_profile()["social_links"], **(stored.get("social_links") or {})}
    return profile


def profile_completion(user: dict) -> int:
    """Percentage of the eleven profile fields that are filled in"""
    profile = instructor_profile(user)
    fields = [
        user.get("name"),
        user.get("email"),
        profile["specialty"],
        profile["experience"],
        user.get("bio"),
        profile["phone"],
        profile["location"],
        user.get("avatar"),
    ] + [profile["social_links"][key] for key in SOCIAL_LINKS]

    # experience 0 counts as missing
    filled = sum(1 for value in fields if value and str(value).strip())
    return int(round_half_up(100 * filled / len(fields)))


async def teaching_stats(db: AsyncIOMotorDatabase, instructor_id: str) -> dict:
    courses = await db.courses.find(
        {"instructor_id": instructor_id},
        {"_id": 0, "course_id": 1, "title": 1, "students": 1, "roadmap": 1}
    ).to_list(length=None)
    titles = {c["course_id"]: c.get("title") for c in courses}

    reviews = await db.reviews.find(
        {"course_id": {"$in": list(titles)}}, {"_id": 0}
    ).sort("created_at", -1).to_list(length=None)
    ratings = [r["rating"] for r in reviews]

    return {
        "total_courses": len(courses),
        "total_students": sum(c.get("students", 0) for c in courses),
        "total_roadmap_days": sum(get_roadmap_length(c) for c in courses),
        "average_rating": round_half_up(sum(ratings) / len(ratings), 1) if ratings else 0.0,
        "review_count": len(reviews),
        "recent_reviews": recent_reviews(reviews, titles),
    }


def recent_reviews(reviews: List[dict], titles: dict) -> List[dict]:
    return [
        {
            "student_name": r.get("student_name"),
            "rating": r["rating"],
            "comment": r.get("comment"),
            "created_at": r.get("created_at"),
            "course_title": titles.get(r["course_id"]),
        }
        for r in reviews[:RECENT_REVIEWS_LIMIT]
    ]
