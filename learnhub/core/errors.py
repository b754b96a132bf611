"""
Progress & scoring error taxonomy
All are local validation failures: synchronous, typed, never retryable
"""


class ProgressError(Exception):
    """Base class for enrollment progress validation failures"""

    code = "progress_error"

    def __init__(self, message: str, day: int = None):
        super().__init__(message)
        self.message = message
        self.day = day

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        if self.day is not None:
            detail["day"] = self.day
        return detail


class OutOfOrderError(ProgressError):
    """Completing a day whose predecessor is not complete"""

    code = "out_of_order"


class SequenceViolationError(ProgressError):
    """Un-completing a day whose successor is complete"""

    code = "sequence_violation"


class InvalidDayError(ProgressError):
    """Day number outside 1..roadmap length"""

    code = "invalid_day"


class EnrollmentNotActiveError(ProgressError):
    """Progress recorded against an enrollment still awaiting approval"""

    code = "enrollment_not_active"


class ConcurrentUpdateError(Exception):
    """Optimistic version check kept failing for one enrollment"""

    code = "concurrent_update"
