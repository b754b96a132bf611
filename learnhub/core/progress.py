"""
Progress calculator
The only place course-completion percentage and enrollment status are derived
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

from learnhub.core.models import EnrollmentStatus


def round_half_up(value: float, places: int = 0) -> float:
    """
    Round half away from zero (2.5 -> 3, 12.5 -> 13)
    Python's round() is half-even and would disagree on exact halves
    """
    exponent = Decimal(1).scaleb(-places)
    rounded = Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)
    return float(rounded)


def calculate_progress(completed_days: Iterable[int], total_days: int) -> int:
    """
    Completion percentage of a roadmap

    progress = round_half_up(100 * |completed_days| / total_days)

    A roadmap with no days yields 0 instead of dividing by zero.
    """
    if total_days <= 0:
        return 0

    completed = len(set(completed_days))
    percentage = round_half_up(100 * completed / total_days)
    return int(min(max(percentage, 0), 100))


def derive_status(
    progress: int,
    current: Union[EnrollmentStatus, str]
) -> EnrollmentStatus:
    """
    100 -> completed, 1..99 -> started, otherwise the current status

    A zero progress never regresses an explicit enrolled/pending status.
    """
    current = EnrollmentStatus(current)

    if progress >= 100:
        return EnrollmentStatus.COMPLETED
    if progress > 0:
        return EnrollmentStatus.STARTED
    return current
