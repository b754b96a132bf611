from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from learnhub.core.identifiers import UserId, CourseId

# ==================== ENUMS ====================

class EnrollmentStatus(str, Enum):
    PENDING = "pending"
    ENROLLED = "enrolled"
    STARTED = "started"
    COMPLETED = "completed"


ACTIVE_ENROLLMENT_STATUSES = [
    EnrollmentStatus.ENROLLED.value,
    EnrollmentStatus.STARTED.value,
    EnrollmentStatus.COMPLETED.value,
]

# ==================== ENROLLMENT ====================

class Enrollment(BaseModel):
    """
    Progress state of one (user, course) pair
    progress is derived: it always equals calculate_progress(completed_days, roadmap length)
    """
    user_id: UserId
    course_id: CourseId
    status: EnrollmentStatus = EnrollmentStatus.ENROLLED
    completed_days: List[int] = []
    progress: int = Field(0, ge=0, le=100)
    last_accessed_at: Optional[datetime] = None
    version: int = 0
    enrollment_id: Optional[str] = None
    enrolled_at: Optional[datetime] = None

    @field_validator("completed_days")
    @classmethod
    def validate_completed_days(cls, v):
        if any(day < 1 for day in v):
            raise ValueError("Day numbers must be positive")
        return sorted(set(v))

    @field_validator("progress", mode="before")
    @classmethod
    def coerce_progress(cls, v):
        # legacy documents stored float percentages
        if isinstance(v, float):
            from learnhub.core.progress import round_half_up
            return int(round_half_up(v))
        return v

    @classmethod
    def from_document(cls, doc: dict) -> "Enrollment":
        return cls.model_validate({**doc, "version": doc.get("version", 0)})

    def progress_fields(self) -> dict:
        """Fields written back to storage after a progress change"""
        return {
            "completed_days": self.completed_days,
            "progress": self.progress,
            "status": self.status.value,
            "last_accessed_at": self.last_accessed_at,
        }

# ==================== QUIZ SUBMISSION ====================

class QuizSubmission(BaseModel):
    """One attempt at one course day's quiz; immutable once stored"""
    user_id: UserId
    course_url: str
    day_number: int = Field(..., ge=1)
    attempt_number: int = Field(1, ge=1)
    score: float = Field(..., ge=0, le=100)
    is_completed: bool = True
    submitted_date: Optional[datetime] = None

# ==================== LEADERBOARD ====================

class StudentRef(BaseModel):
    user_id: UserId
    name: str
    avatar: Optional[str] = None


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    name: str
    avatar: Optional[str] = None
    courses_enrolled: int
    course_points: float
    quiz_points: float
    total_points: float

# ==================== QUIZ STATS ====================

class QuizStats(BaseModel):
    total_attempts: int = 0
    days_attempted: int = 0
    average_attempt_score: float = 0.0
    best_scores: Dict[str, float] = {}  # "<course_url>:<day>" -> best score
    quiz_points: float = 0.0
