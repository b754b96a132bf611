import logging
import re
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.core.identifiers import new_id, COURSE_PREFIX, REVIEW_PREFIX
from learnhub.core.progress import round_half_up

logger = logging.getLogger(__name__)

# ==================== HELPERS ====================

def slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower())
    return slug.strip("-")


def build_course_url(course_id: str, title: str, instructor_id: str) -> str:
    """<last 5 of course id>-<title slug>-<instructor id>"""
    return f"{course_id[-5:].lower()}-{slugify(title)}-{instructor_id}"


def normalize_roadmap(days: List[dict]) -> List[dict]:
    """Number roadmap days 1..N in list order"""
    return [{**day, "day": idx + 1} for idx, day in enumerate(days)]


def get_roadmap_length(course: Optional[dict]) -> int:
    if not course:
        return 0
    return len(course.get("roadmap") or [])


def get_roadmap_day(course: dict, day: int) -> Optional[dict]:
    for entry in course.get("roadmap") or []:
        if entry.get("day") == day:
            return entry
    return None


def public_course(course: dict, include_roadmap: bool = True) -> dict:
    """Course as shown to students: MCQ answers removed"""
    course = {k: v for k, v in course.items() if k != "_id"}
    if not include_roadmap:
        course.pop("roadmap", None)
        return course

    roadmap = []
    for day in course.get("roadmap") or []:
        mcqs = [
            {
                "question": q["question"],
                "options": [{"text": opt["text"]} for opt in q.get("options", [])],
            }
            for q in day.get("mcqs", [])
        ]
        roadmap.append({**day, "mcqs": mcqs})
    course["roadmap"] = roadmap
    return course

# ==================== COURSE CRUD ====================

async def create_course(db: AsyncIOMotorDatabase, course_data: dict, instructor: dict) -> dict:
    """Create course owned by instructor"""
    course_id = new_id(COURSE_PREFIX)
    now = datetime.utcnow()

    course = {
        "course_id": course_id,
        "course_url": build_course_url(course_id, course_data["title"], instructor["user_id"]),
        "title": course_data["title"],
        "description": course_data["description"],
        "long_description": course_data.get("long_description"),
        "image": course_data.get("image"),
        "duration": course_data.get("duration"),
        "level": course_data["level"],
        "category": course_data["category"],
        "language": course_data["language"],
        "skills": course_data.get("skills", []),
        "instructor_id": instructor["user_id"],
        "instructor_name": instructor.get("name"),
        "roadmap": normalize_roadmap(course_data.get("roadmap", [])),
        "rating": 0.0,
        "students": 0,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }

    await db.courses.insert_one(course)
    course.pop("_id", None)
    return course


async def get_course(db: AsyncIOMotorDatabase, course_ref: str) -> Optional[dict]:
    """Get course by course_id or course_url"""
    return await db.courses.find_one(
        {"$or": [{"course_id": course_ref}, {"course_url": course_ref}]},
        {"_id": 0}
    )


async def list_courses(db: AsyncIOMotorDatabase, filters: dict, skip: int = 0, limit: int = 20) -> List[dict]:
    """List active courses with filters"""
    query = {"is_active": True}
    if filters.get("category"):
        query["category"] = filters["category"]
    if filters.get("level"):
        query["level"] = filters["level"]
    if filters.get("instructor_id"):
        query["instructor_id"] = filters["instructor_id"]
    if filters.get("search"):
        pattern = re.escape(filters["search"])
        query["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]

    cursor = db.courses.find(query, {"_id": 0}).sort("created_at", -1).skip(skip).limit(limit)
    return await cursor.to_list(length=limit)


async def update_course(db: AsyncIOMotorDatabase, course_id: str, updates: dict) -> bool:
    updates["updated_at"] = datetime.utcnow()
    result = await db.courses.update_one({"course_id": course_id}, {"$set": updates})
    return result.matched_count > 0


async def replace_roadmap(db: AsyncIOMotorDatabase, course_id: str, roadmap: List[dict]) -> int:
    """
    Replace the roadmap and return its new length
    Callers must reconcile the course's enrollments afterwards
    """
    roadmap = normalize_roadmap(roadmap)
    await db.courses.update_one(
        {"course_id": course_id},
        {"$set": {"roadmap": roadmap, "updated_at": datetime.utcnow()}}
    )
    return len(roadmap)


async def delete_course(db: AsyncIOMotorDatabase, course_id: str) -> dict:
    """Delete course and the records that only make sense with it"""
    enrollments = await db.enrollments.delete_many({"course_id": course_id})
    reviews = await db.reviews.delete_many({"course_id": course_id})
    await db.courses.delete_one({"course_id": course_id})

    logger.info(
        "Deleted course %s (%d enrollments, %d reviews)",
        course_id, enrollments.deleted_count, reviews.deleted_count
    )
    return {
        "enrollments_removed": enrollments.deleted_count,
        "reviews_removed": reviews.deleted_count,
    }

# ==================== REVIEWS ====================

async def upsert_review(db: AsyncIOMotorDatabase, course_id: str, student: dict, rating: int, comment: Optional[str]) -> dict:
    """One review per student per course; a second review replaces the first"""
    now = datetime.utcnow()
    existing = await db.reviews.find_one({"course_id": course_id, "student_id": student["user_id"]})

    if existing:
        await db.reviews.update_one(
            {"review_id": existing["review_id"]},
            {"$set": {"rating": rating, "comment": comment, "updated_at": now}}
        )
        review_id = existing["review_id"]
    else:
        review_id = new_id(REVIEW_PREFIX)
        await db.reviews.insert_one({
            "review_id": review_id,
            "course_id": course_id,
            "student_id": student["user_id"],
            "student_name": student.get("name"),
            "rating": rating,
            "comment": comment,
            "created_at": now,
            "updated_at": now,
        })

    await refresh_course_rating(db, course_id)
    return await db.reviews.find_one({"review_id": review_id}, {"_id": 0})


async def list_reviews(db: AsyncIOMotorDatabase, course_id: str) -> List[dict]:
    cursor = db.reviews.find({"course_id": course_id}, {"_id": 0}).sort("created_at", -1)
    return await cursor.to_list(length=None)


async def refresh_course_rating(db: AsyncIOMotorDatabase, course_id: str) -> float:
    reviews = await list_reviews(db, course_id)
    ratings = [r["rating"] for r in reviews]
    rating = round_half_up(sum(ratings) / len(ratings), 1) if ratings else 0.0

    await db.courses.update_one({"course_id": course_id}, {"$set": {"rating": rating}})
    return rating
