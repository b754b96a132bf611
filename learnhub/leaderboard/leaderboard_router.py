from typing import Dict, List

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.auth.dependencies import ROLE_STUDENT
from learnhub.core.leaderboard import rank_leaderboard
from learnhub.core.models import Enrollment, StudentRef
from learnhub.db import get_db
from learnhub.enrollments.database import list_enrollments
from learnhub.quizzes.database import load_completed_submissions

router = APIRouter(prefix="/leaderboard", tags=["Leaderboards"])

# ==================== LEADERBOARD INPUTS ====================

async def list_students(db: AsyncIOMotorDatabase) -> List[StudentRef]:
    cursor = db.users.find(
        {"role": ROLE_STUDENT},
        {"_id": 0, "user_id": 1, "name": 1, "avatar": 1}
    ).sort("created_at", 1)
    docs = await cursor.to_list(length=None)
    return [StudentRef(user_id=d["user_id"], name=d.get("name") or "Anonymous", avatar=d.get("avatar")) for d in docs]


def group_enrollments(enrollments: List[Enrollment]) -> Dict[str, List[Enrollment]]:
    grouped: Dict[str, List[Enrollment]] = {}
    for enr in enrollments:
        grouped.setdefault(enr.user_id, []).append(enr)
    return grouped


async def compute_leaderboard(db: AsyncIOMotorDatabase):
    """Gather students, enrollments and completed quiz submissions, then rank"""
    students = await list_students(db)
    enrollments = await list_enrollments(db)
    submissions = await load_completed_submissions(db, [s.user_id for s in students])

    return rank_leaderboard(students, group_enrollments(enrollments), submissions)

# ==================== ENDPOINTS ====================

@router.get("/students")
async def get_students_leaderboard(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    entries = await compute_leaderboard(db)
    page = entries[skip:skip + limit]
    return {
        "entries": [e.model_dump() for e in page],
        "total_users": len(entries),
        "skip": skip,
        "limit": limit
    }
