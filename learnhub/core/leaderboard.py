"""
Leaderboard ranker
Pure ranking over data the caller has already loaded
"""

from typing import Dict, Iterable, List, Mapping, Sequence

from learnhub.core.models import Enrollment, LeaderboardEntry, QuizSubmission, StudentRef
from learnhub.core.progress import round_half_up
from learnhub.core.scoring import aggregate_quiz_score


def rank_leaderboard(
    students: Sequence[StudentRef],
    enrollments_by_student: Mapping[str, Iterable[Enrollment]],
    submissions_by_student: Mapping[str, Iterable[QuizSubmission]]
) -> List[LeaderboardEntry]:
    """
    Rank students by course points plus quiz points

    - course_points: sum of progress over every enrollment (not normalised by
      number of courses)
    - quiz_points: aggregate_quiz_score over the student's submissions
    - total_points: course_points + quiz_points, one decimal place

    Sorted by total_points descending. The sort is stable, so tied students
    keep their input order. Ranks are 1-based positions.
    """
    rows: List[Dict] = []

    for student in students:
        enrollments = list(enrollments_by_student.get(student.user_id, []))
        submissions = list(submissions_by_student.get(student.user_id, []))

        course_points = sum(e.progress for e in enrollments)
        quiz_points = aggregate_quiz_score(submissions)

        rows.append({
            "user_id": student.user_id,
            "name": student.name,
            "avatar": student.avatar,
            "courses_enrolled": len(enrollments),
            "course_points": round_half_up(course_points, 1),
            "quiz_points": round_half_up(quiz_points, 1),
            "total_points": round_half_up(course_points + quiz_points, 1),
        })

    rows.sort(key=lambda row: row["total_points"], reverse=True)

    return [
        LeaderboardEntry(rank=idx + 1, **row)
        for idx, row in enumerate(rows)
    ]
