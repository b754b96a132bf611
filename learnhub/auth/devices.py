"""
Connected devices
Every successful login records the device it came from
"""

import hashlib
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.config import MAX_CONNECTED_DEVICES


def device_id_for(user_agent: Optional[str]) -> str:
    # derived server-side from the user agent, never taken from the client
    return hashlib.sha256((user_agent or "unknown").encode()).hexdigest()[:16]


async def record_device(
    db: AsyncIOMotorDatabase,
    user_id: str,
    user_agent: Optional[str],
    ip_address: Optional[str]
) -> dict:
    """Move the device to the front of the user's list, keeping its first_seen_at"""
    now = datetime.utcnow()
    device_id = device_id_for(user_agent)

    user = await db.users.find_one({"user_id": user_id}, {"_id": 0, "connected_devices": 1}) or {}
    devices = user.get("connected_devices") or []
    previous = next((d for d in devices if d["device_id"] == device_id), None)

    device = {
        "device_id": device_id,
        "user_agent": user_agent or "unknown",
        "ip_address": ip_address,
        "first_seen_at": previous["first_seen_at"] if previous else now,
        "last_seen_at": now,
    }
    others = [d for d in devices if d["device_id"] != device_id]
    await db.users.update_one(
        {"user_id": user_id},
        {"$set": {"connected_devices": [device] + others[:MAX_CONNECTED_DEVICES - 1]}}
    )
    return device


async def list_devices(db: AsyncIOMotorDatabase, user_id: str) -> List[dict]:
    user = await db.users.find_one({"user_id": user_id}, {"_id": 0, "connected_devices": 1}) or {}
    return user.get("connected_devices") or []


async def remove_device(db: AsyncIOMotorDatabase, user_id: str, device_id: str) -> bool:
    result = await db.users.update_one(
        {"user_id": user_id, "connected_devices.device_id": device_id},
        {"$pull": {"connected_devices": {"device_id": device_id}}}
    )
    return result.modified_count > 0
