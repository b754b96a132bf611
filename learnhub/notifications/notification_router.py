from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.auth.dependencies import get_current_user_id
from learnhub.db import get_db
from learnhub.notifications import service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
async def get_notifications(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    notifications, unread_count = await service.list_notifications(db, user_id)
    return {
        "notifications": notifications,
        "count": len(notifications),
        "unread_count": unread_count
    }


@router.put("/mark-all-read")
async def mark_all_notifications_read(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    modified = await service.mark_all_read(db, user_id)
    return {
        "success": True,
        "message": f"Marked {modified} notifications as read",
        "unread_count": 0
    }


@router.put("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    if not await service.mark_read(db, user_id, notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")

    unread_count = await db.notifications.count_documents({"user_id": user_id, "read": False})
    return {
        "success": True,
        "message": "Notification marked as read",
        "unread_count": unread_count
    }
