"""
Quiz score aggregator

Canonical quiz score: average the attempts of each (course_url, day_number),
then sum those averages across days. Retaking a quiz can move a day's average
but never adds a new day's worth of points, so retries cannot inflate a score.
Only completed submissions count. Leaderboard, student stats and admin
analytics all use this module.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from learnhub.core.models import QuizSubmission, QuizStats
from learnhub.core.progress import round_half_up

DayKey = Tuple[str, int]


def _group_by_day(submissions: Iterable[QuizSubmission]) -> Dict[DayKey, List[float]]:
    groups: Dict[DayKey, List[float]] = defaultdict(list)
    for sub in submissions:
        if not sub.is_completed:
            continue
        groups[(sub.course_url, sub.day_number)].append(sub.score)
    return groups


def aggregate_quiz_score(submissions: Iterable[QuizSubmission]) -> float:
    """
    Sum of per-day average scores

    Example: day 1 attempts 80 and 100, day 2 attempt 60 -> 90 + 60 = 150
    """
    groups = _group_by_day(submissions)
    return sum(sum(scores) / len(scores) for scores in groups.values())


def summarize_quiz_submissions(submissions: Iterable[QuizSubmission]) -> QuizStats:
    """Student-facing quiz summary built on the canonical score"""
    submissions = list(submissions)
    groups = _group_by_day(submissions)

    attempts = [score for scores in groups.values() for score in scores]
    if not attempts:
        return QuizStats()

    best_scores = {
        f"{course_url}:{day}": max(scores)
        for (course_url, day), scores in sorted(groups.items())
    }

    return QuizStats(
        total_attempts=len(attempts),
        days_attempted=len(groups),
        average_attempt_score=round_half_up(sum(attempts) / len(attempts), 1),
        best_scores=best_scores,
        quiz_points=round_half_up(aggregate_quiz_score(submissions), 1),
    )
