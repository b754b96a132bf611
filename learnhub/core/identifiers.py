"""
Identifier normalization
Every id crossing the storage boundary is reduced to one canonical string
"""

import uuid
from typing import Annotated, Any, Optional

from bson import ObjectId
from pydantic import BeforeValidator

# ==================== PREFIXES ====================

USER_PREFIX = "USR"
COURSE_PREFIX = "COURSE"
ENROLLMENT_PREFIX = "ENR"
ENROLLMENT_REQUEST_PREFIX = "EREQ"
QUIZ_SUBMISSION_PREFIX = "QSUB"
REVIEW_PREFIX = "REV"
DISCUSSION_PREFIX = "DISC"
REPLY_PREFIX = "RPL"
MESSAGE_PREFIX = "MSG"
NOTIFICATION_PREFIX = "NTF"
CONTACT_REQUEST_PREFIX = "CONTACT"


def new_id(prefix: str) -> str:
    """Generate unique ID with prefix"""
    return f"{prefix}_{uuid.uuid4().hex[:12].upper()}"


def normalize_id(value: Any, prefix: Optional[str] = None) -> str:
    """
    Reduce an identifier to its canonical string form

    Accepts:
        - plain strings ("USR_1A2B3C4D5E6F")
        - bson ObjectId (legacy documents)
        - extended JSON {"$oid": "..."}

    Raises ValueError for anything else, or for a string id that does not
    carry the expected prefix. ObjectId-derived ids are accepted as legacy ids.
    """
    if isinstance(value, ObjectId):
        return str(value)

    if isinstance(value, dict) and set(value.keys()) == {"$oid"}:
        raw = value["$oid"]
        if not ObjectId.is_valid(raw):
            raise ValueError(f"Invalid ObjectId: {raw!r}")
        return str(ObjectId(raw))

    if not isinstance(value, str):
        raise ValueError(f"Unsupported identifier type: {type(value).__name__}")

    ident = value.strip()
    if not ident:
        raise ValueError("Identifier must not be empty")

    if prefix and not ident.startswith(f"{prefix}_") and not ObjectId.is_valid(ident):
        raise ValueError(f"Identifier {ident!r} is not a {prefix} id")

    return ident


def _normalizer(prefix: Optional[str]):
    return lambda value: normalize_id(value, prefix)


UserId = Annotated[str, BeforeValidator(_normalizer(USER_PREFIX))]
CourseId = Annotated[str, BeforeValidator(_normalizer(COURSE_PREFIX))]
