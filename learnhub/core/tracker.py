"""
Completion tracker
Sequential day completion for one enrollment

Days must be completed in order: day d > 1 needs d - 1, and day d cannot be
un-completed while d + 1 is complete. Every change recomputes progress and
status through learnhub.core.progress and stamps last_accessed_at.
Operations return a new Enrollment and never mutate their input.
"""

from datetime import datetime
from typing import Optional

from learnhub.core.errors import (
    OutOfOrderError,
    SequenceViolationError,
    InvalidDayError,
    EnrollmentNotActiveError,
)
from learnhub.core.models import Enrollment, EnrollmentStatus
from learnhub.core.progress import calculate_progress, derive_status


def _check_active(enrollment: Enrollment):
    if enrollment.status == EnrollmentStatus.PENDING:
        raise EnrollmentNotActiveError(
            "Enrollment is awaiting approval; progress cannot be recorded yet"
        )


def _check_day(day: int, total_days: int):
    if day < 1:
        raise InvalidDayError(f"Day {day} is not a valid day number", day=day)
    if day > total_days:
        raise InvalidDayError(
            f"Day {day} is beyond the course roadmap ({total_days} days)", day=day
        )


def _with_days(
    enrollment: Enrollment,
    completed_days: set,
    total_days: int,
    now: Optional[datetime]
) -> Enrollment:
    progress = calculate_progress(completed_days, total_days)
    status = derive_status(progress, enrollment.status)

    return enrollment.model_copy(update={
        "completed_days": sorted(completed_days),
        "progress": progress,
        "status": status,
        "last_accessed_at": now or datetime.utcnow(),
    })


def mark_day_complete(
    enrollment: Enrollment,
    day: int,
    total_days: int,
    now: Optional[datetime] = None
) -> Enrollment:
    """
    Mark a roadmap day complete

    Raises:
        EnrollmentNotActiveError: enrollment still pending
        InvalidDayError: day outside 1..total_days
        OutOfOrderError: day > 1 and day - 1 not complete

    Re-marking a day that is already complete changes nothing but the access time.
    """
    _check_active(enrollment)
    _check_day(day, total_days)

    completed = set(enrollment.completed_days)
    if day > 1 and day not in completed and (day - 1) not in completed:
        raise OutOfOrderError(
            f"Cannot complete day {day} until day {day - 1} is completed", day=day
        )

    completed.add(day)
    return _with_days(enrollment, completed, total_days, now)


def mark_day_incomplete(
    enrollment: Enrollment,
    day: int,
    total_days: int,
    now: Optional[datetime] = None
) -> Enrollment:
    """
    Remove completion of a roadmap day

    Raises:
        EnrollmentNotActiveError: enrollment still pending
        InvalidDayError: day < 1
        SequenceViolationError: day + 1 is complete
    """
    _check_active(enrollment)
    if day < 1:
        raise InvalidDayError(f"Day {day} is not a valid day number", day=day)

    completed = set(enrollment.completed_days)
    if (day + 1) in completed:
        raise SequenceViolationError(
            f"Cannot mark day {day} incomplete while day {day + 1} is complete", day=day
        )

    completed.discard(day)
    return _with_days(enrollment, completed, total_days, now)


def reconcile(
    enrollment: Enrollment,
    total_days: int,
    now: Optional[datetime] = None
) -> Enrollment:
    """
    Re-derive progress for a roadmap of total_days

    Keeps only the contiguous run 1..k of completed days inside the roadmap,
    so a shortened roadmap or a legacy gap never leaves a day complete
    without its predecessor. Pending enrollments keep their status.
    """
    completed = set()
    day = 1
    existing = set(enrollment.completed_days)
    while day in existing and day <= total_days:
        completed.add(day)
        day += 1

    progress = calculate_progress(completed, total_days)
    if enrollment.status == EnrollmentStatus.PENDING:
        status = EnrollmentStatus.PENDING
    else:
        status = derive_status(progress, enrollment.status)

    return enrollment.model_copy(update={
        "completed_days": sorted(completed),
        "progress": progress,
        "status": status,
        "last_accessed_at": enrollment.last_accessed_at or now,
    })
