"""
User settings
Notification preferences and connected devices for the signed-in user
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from learnhub.auth.dependencies import get_current_user
from learnhub.auth.devices import list_devices, remove_device
from learnhub.db import get_db
from learnhub.notifications.service import notification_preferences, update_preferences

router = APIRouter(prefix="/user", tags=["User Settings"])


class NotificationPreferencesUpdate(BaseModel):
    course_updates: Optional[bool] = None
    assignment_reminders: Optional[bool] = None
    discussion_replies: Optional[bool] = None


@router.get("/notifications")
async def get_notification_preferences(user: dict = Depends(get_current_user)):
    return {"preferences": notification_preferences(user)}


@router.put("/notifications")
async def update_notification_preferences(
    data: NotificationPreferencesUpdate,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No preferences to update")

    preferences = await update_preferences(db, user["user_id"], changes)
    if preferences is None:
        raise HTTPException(status_code=404, detail="User not found")

    return {
        "success": True,
        "message": "Notification preferences updated successfully",
        "preferences": preferences
    }


@router.get("/devices")
async def get_devices(
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    devices = await list_devices(db, user["user_id"])
    return {"devices": devices, "count": len(devices)}


@router.delete("/devices/{device_id}")
async def delete_device(
    device_id: str,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    if not await remove_device(db, user["user_id"], device_id):
        raise HTTPException(status_code=404, detail="Device not found")
    return {"success": True, "message": "Device removed successfully"}
