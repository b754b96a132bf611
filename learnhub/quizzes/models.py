from typing import List

from pydantic import BaseModel, Field, field_validator


class QuizSubmit(BaseModel):
    # index of the chosen option for each question, in question order
    selected_answers: List[int] = Field(..., min_length=1)

    @field_validator("selected_answers")
    @classmethod
    def validate_indexes(cls, v):
        if any(idx < 0 for idx in v):
            raise ValueError("Answer indexes must be non-negative")
        return v
