from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

# ==================== ENUMS ====================

class CourseLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    BEGINNER_TO_INTERMEDIATE = "Beginner to Intermediate"

# ==================== ROADMAP MODELS ====================

class McqOption(BaseModel):
    text: str = Field(..., min_length=1)
    is_correct: bool = False


class McqQuestion(BaseModel):
    question: str = Field(..., min_length=1)
    options: List[McqOption] = Field(..., min_length=2)
    explanation: Optional[str] = None

    @field_validator("options")
    @classmethod
    def validate_options(cls, v):
        if not any(opt.is_correct for opt in v):
            raise ValueError("At least one option must be correct")
        return v


class RoadmapDay(BaseModel):
    # day numbers are reassigned 1..N from list order when saved
    day: Optional[int] = None
    topics: str = Field(..., min_length=1)
    video: str = Field(..., min_length=1)
    transcript: Optional[str] = None
    notes: Optional[str] = None
    mcqs: List[McqQuestion] = []

# ==================== COURSE MODELS ====================

class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    long_description: Optional[str] = None
    image: Optional[str] = None
    duration: Optional[str] = None
    level: CourseLevel
    category: str
    language: str
    skills: List[str] = []
    roadmap: List[RoadmapDay] = []


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    long_description: Optional[str] = None
    image: Optional[str] = None
    duration: Optional[str] = None
    level: Optional[CourseLevel] = None
    category: Optional[str] = None
    language: Optional[str] = None
    skills: Optional[List[str]] = None
    is_active: Optional[bool] = None


class RoadmapUpdate(BaseModel):
    roadmap: List[RoadmapDay]

# ==================== REVIEW MODELS ====================

class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)
