import logging
from datetime import datetime
from typing import List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.config import NOTIFICATIONS_PAGE_SIZE
from learnhub.core.identifiers import new_id, NOTIFICATION_PREFIX

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = {"info", "success", "warning", "error", "message", "enrollment", "discussion", "course"}

DEFAULT_PREFERENCES = {
    "course_updates": True,
    "assignment_reminders": True,
    "discussion_replies": True,
}

# notification type -> preference a user can switch off
PREFERENCE_BY_TYPE = {
    "course": "course_updates",
    "discussion": "discussion_replies",
}


def notification_preferences(user: dict) -> dict:
    """Stored preferences over the defaults"""
    return {**DEFAULT_PREFERENCES, **(user.get("notification_preferences") or {})}


async def update_preferences(db: AsyncIOMotorDatabase, user_id: str, changes: dict) -> Optional[dict]:
    user = await db.users.find_one({"user_id": user_id}, {"_id": 0, "notification_preferences": 1})
    if user is None:
        return None

    preferences = {**notification_preferences(user), **changes}
    await db.users.update_one(
        {"user_id": user_id},
        {"$set": {"notification_preferences": preferences, "updated_at": datetime.utcnow()}}
    )
    return preferences


async def notify(
    db: AsyncIOMotorDatabase,
    user_id: str,
    title: str,
    message: str,
    type: str = "info",
    link: Optional[str] = None
) -> Optional[str]:
    """
    Store a notification for one user
    Returns None when the user has switched this kind of notification off
    """
    preference = PREFERENCE_BY_TYPE.get(type)
    if preference:
        user = await db.users.find_one({"user_id": user_id}, {"_id": 0, "notification_preferences": 1})
        if user and not notification_preferences(user)[preference]:
            logger.debug("Skipping %s notification for %s (%s off)", type, user_id, preference)
            return None

    notification_id = new_id(NOTIFICATION_PREFIX)
    await db.notifications.insert_one({
        "notification_id": notification_id,
        "user_id": user_id,
        "title": title,
        "message": message,
        "type": type if type in NOTIFICATION_TYPES else "info",
        "link": link,
        "read": False,
        "created_at": datetime.utcnow(),
    })
    return notification_id


async def list_notifications(
    db: AsyncIOMotorDatabase,
    user_id: str,
    limit: int = NOTIFICATIONS_PAGE_SIZE
) -> Tuple[List[dict], int]:
    """Latest notifications plus the unread count"""
    cursor = db.notifications.find({"user_id": user_id}, {"_id": 0}).sort("created_at", -1).limit(limit)
    notifications = await cursor.to_list(length=limit)
    unread = await db.notifications.count_documents({"user_id": user_id, "read": False})
    return notifications, unread


async def mark_read(db: AsyncIOMotorDatabase, user_id: str, notification_id: str) -> bool:
    result = await db.notifications.update_one(
        {"notification_id": notification_id, "user_id": user_id},
        {"$set": {"read": True}}
    )
    return result.matched_count > 0


async def mark_all_read(db: AsyncIOMotorDatabase, user_id: str) -> int:
    result = await db.notifications.update_many(
        {"user_id": user_id, "read": False},
        {"$set": {"read": True}}
    )
    return result.modified_count
