import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from learnhub.core.identifiers import new_id, QUIZ_SUBMISSION_PREFIX
from learnhub.core.models import QuizSubmission
from learnhub.core.progress import round_half_up

logger = logging.getLogger(__name__)

MAX_ATTEMPT_NUMBER_RETRIES = 5


def grade_answers(mcqs: List[dict], selected_answers: List[int]) -> float:
    """
    Percentage of questions answered with a correct option

    Raises ValueError when the answers don't line up with the questions.
    """
    if len(selected_answers) != len(mcqs):
        raise ValueError(f"Expected {len(mcqs)} answers, got {len(selected_answers)}")

    correct = 0
    for question, choice in zip(mcqs, selected_answers):
        options = question.get("options", [])
        if choice >= len(options):
            raise ValueError(f"Answer {choice} is out of range for question '{question.get('question')}'")
        if options[choice].get("is_correct"):
            correct += 1

    return round_half_up(100 * correct / len(mcqs))


async def next_attempt_number(db: AsyncIOMotorDatabase, user_id: str, course_url: str, day_number: int) -> int:
    last = await db.quiz_submissions.find_one(
        {"user_id": user_id, "course_url": course_url, "day_number": day_number},
        sort=[("attempt_number", DESCENDING)]
    )
    return last["attempt_number"] + 1 if last else 1


async def create_quiz_submission(
    db: AsyncIOMotorDatabase,
    user_id: str,
    course: dict,
    day: dict,
    selected_answers: List[int],
    score: float
) -> dict:
    """
    Store one attempt; attempt numbers run 1, 2, 3... per (user, course, day)

    Two simultaneous submissions can compute the same next number; the unique
    attempt index rejects the second insert and it is renumbered.
    """
    for _ in range(MAX_ATTEMPT_NUMBER_RETRIES):
        attempt_number = await next_attempt_number(db, user_id, course["course_url"], day["day"])
        submission = {
            "submission_id": new_id(QUIZ_SUBMISSION_PREFIX),
            "user_id": user_id,
            "course_id": course["course_id"],
            "course_url": course["course_url"],
            "day_number": day["day"],
            "attempt_number": attempt_number,
            "title": f"Day {day['day']}: {day.get('topics', '')}".strip(),
            "selected_answers": selected_answers,
            "score": score,
            "is_completed": True,
            "submitted_date": datetime.utcnow(),
        }
        try:
            await db.quiz_submissions.insert_one(submission)
        except DuplicateKeyError:
            logger.warning(
                "Attempt %d for %s day %d already taken, renumbering",
                attempt_number, course["course_url"], day["day"]
            )
            continue
        submission.pop("_id", None)
        return submission

    raise RuntimeError("Could not assign a quiz attempt number")


async def list_user_submissions(
    db: AsyncIOMotorDatabase,
    user_id: str,
    course_url: Optional[str] = None
) -> List[dict]:
    query = {"user_id": user_id}
    if course_url:
        query["course_url"] = course_url
    cursor = db.quiz_submissions.find(query, {"_id": 0}).sort("submitted_date", -1)
    return await cursor.to_list(length=None)


def to_quiz_submissions(docs: Iterable[dict]) -> List[QuizSubmission]:
    return [QuizSubmission.model_validate(doc) for doc in docs]


async def load_completed_submissions(
    db: AsyncIOMotorDatabase,
    user_ids: Optional[Iterable[str]] = None
) -> Dict[str, List[QuizSubmission]]:
    """Completed submissions grouped by user id"""
    query = {"is_completed": True}
    if user_ids is not None:
        query["user_id"] = {"$in": list(user_ids)}

    docs = await db.quiz_submissions.find(query, {"_id": 0}).to_list(length=None)

    grouped: Dict[str, List[QuizSubmission]] = {}
    for sub in to_quiz_submissions(docs):
        grouped.setdefault(sub.user_id, []).append(sub)
    return grouped
