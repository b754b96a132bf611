import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.auth.dependencies import get_current_user_id
from learnhub.core.models import ACTIVE_ENROLLMENT_STATUSES
from learnhub.core.scoring import summarize_quiz_submissions
from learnhub.courses.database import get_course, get_roadmap_day
from learnhub.db import get_db
from learnhub.enrollments.database import get_enrollment
from learnhub.quizzes.database import (
    grade_answers, create_quiz_submission, list_user_submissions, to_quiz_submissions
)
from learnhub.quizzes.models import QuizSubmit

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Quizzes"])


@router.post("/quizzes/{course_id}/days/{day}/submit", status_code=201)
async def submit_quiz(
    course_id: str,
    day: int,
    data: QuizSubmit,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """
    Submit answers for a day's quiz
    Graded against the roadmap's MCQs; every submission is a new attempt
    """
    course = await get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    enrollment = await get_enrollment(db, course["course_id"], user_id)
    if not enrollment or enrollment["status"] not in ACTIVE_ENROLLMENT_STATUSES:
        raise HTTPException(status_code=403, detail="Not enrolled in this course")

    roadmap_day = get_roadmap_day(course, day)
    if not roadmap_day:
        raise HTTPException(status_code=404, detail=f"Day {day} not found in course roadmap")

    mcqs = roadmap_day.get("mcqs") or []
    if not mcqs:
        raise HTTPException(status_code=400, detail=f"Day {day} has no quiz")

    try:
        score = grade_answers(mcqs, data.selected_answers)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        submission = await create_quiz_submission(db, user_id, course, roadmap_day, data.selected_answers, score)
    except Exception as e:
        logger.exception("Quiz submission failed for %s day %d", course["course_id"], day)
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "success": True,
        "submission_id": submission["submission_id"],
        "attempt_number": submission["attempt_number"],
        "score": score,
        "correct_answers": [
            next((i for i, opt in enumerate(q.get("options", [])) if opt.get("is_correct")), None)
            for q in mcqs
        ],
        "explanations": [q.get("explanation") for q in mcqs]
    }


@router.get("/student/quiz-submissions")
async def get_my_quiz_submissions(
    course_url: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    submissions = await list_user_submissions(db, user_id, course_url)
    return {"data": submissions, "count": len(submissions)}


@router.get("/student/quiz-stats")
async def get_my_quiz_stats(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Quiz summary; quiz_points is the same figure the leaderboard uses"""
    docs = await list_user_submissions(db, user_id)
    stats = summarize_quiz_submissions(to_quiz_submissions(docs))
    return stats.model_dump()
