from typing import List

from pydantic import BaseModel, Field, field_validator


class EnrollmentCreate(BaseModel):
    course_id: str


class DayProgressUpdate(BaseModel):
    completed: bool = True


class EnrollmentRequestCreate(BaseModel):
    """
    Manual payment verification request
    screenshot_ref points at the already-uploaded transaction screenshot
    """
    course_id: str
    email: str = Field(..., min_length=3, max_length=254)
    mobile: str = Field(..., min_length=7, max_length=20)
    utr_number: str = Field(..., min_length=6, max_length=40)
    screenshot_ref: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("utr_number")
    @classmethod
    def normalize_utr(cls, v):
        return v.strip().upper()


class RequestIds(BaseModel):
    request_ids: List[str] = Field(..., min_length=1)
