"""
Direct messages between students and course instructors
Every conversation is scoped to one course
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field

from learnhub.auth.dependencies import get_current_user, ROLE_ADMIN
from learnhub.community.access import verify_course_member
from learnhub.core.identifiers import new_id, MESSAGE_PREFIX
from learnhub.db import get_db
from learnhub.notifications.service import notify

router = APIRouter(prefix="/messages", tags=["Messages"])


class MessageCreate(BaseModel):
    receiver_id: str
    course_id: str
    content: str = Field(..., min_length=1, max_length=5000)


@router.post("", status_code=201)
async def send_message(
    data: MessageCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    """
    Students message the course instructor and vice versa
    Both sides must belong to the course
    """
    if data.receiver_id == user["user_id"]:
        raise HTTPException(status_code=400, detail="Cannot message yourself")

    receiver = await db.users.find_one({"user_id": data.receiver_id}, {"_id": 0, "password_hash": 0})
    if not receiver:
        raise HTTPException(status_code=404, detail="Receiver not found")

    course = await verify_course_member(db, data.course_id, user)
    await verify_course_member(db, course["course_id"], receiver)

    instructor_id = course["instructor_id"]
    if ROLE_ADMIN not in (user.get("role"), receiver.get("role")) and instructor_id not in (user["user_id"], receiver["user_id"]):
        raise HTTPException(status_code=403, detail="Messages must involve the course instructor")

    message = {
        "message_id": new_id(MESSAGE_PREFIX),
        "course_id": course["course_id"],
        "sender_id": user["user_id"],
        "sender_name": user.get("name"),
        "receiver_id": receiver["user_id"],
        "content": data.content,
        "read": False,
        "created_at": datetime.utcnow(),
    }
    await db.messages.insert_one(message)
    message.pop("_id", None)

    await notify(
        db, receiver["user_id"],
        title="New message",
        message=f"{user.get('name', 'Someone')} sent you a message about {course['title']}",
        type="message",
        link=f"/messages/{user['user_id']}/{course['course_id']}"
    )

    return {"success": True, "message": message}


@router.get("/conversations")
async def get_conversations(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    """One entry per (partner, course), newest conversation first"""
    me = user["user_id"]
    messages = await db.messages.find(
        {"$or": [{"sender_id": me}, {"receiver_id": me}]}, {"_id": 0}
    ).sort("created_at", -1).to_list(length=None)

    conversations = {}
    for msg in messages:
        partner_id = msg["receiver_id"] if msg["sender_id"] == me else msg["sender_id"]
        key = (partner_id, msg["course_id"])
        conv = conversations.get(key)
        if conv is None:
            conv = conversations[key] = {
                "partner_id": partner_id,
                "course_id": msg["course_id"],
                "last_message": msg,
                "unread_count": 0,
            }
        if msg["receiver_id"] == me and not msg.get("read"):
            conv["unread_count"] += 1

    partner_ids = list({k[0] for k in conversations})
    course_ids = list({k[1] for k in conversations})
    partners = {
        u["user_id"]: u for u in await db.users.find(
            {"user_id": {"$in": partner_ids}}, {"_id": 0, "user_id": 1, "name": 1, "avatar": 1, "role": 1}
        ).to_list(length=None)
    }
    courses = {
        c["course_id"]: c["title"] for c in await db.courses.find(
            {"course_id": {"$in": course_ids}}, {"_id": 0, "course_id": 1, "title": 1}
        ).to_list(length=None)
    }

    result = []
    for conv in conversations.values():
        # conversations with deleted users or courses are left for the orphan cleanup
        if conv["partner_id"] not in partners or conv["course_id"] not in courses:
            continue
        result.append({
            **conv,
            "partner": partners[conv["partner_id"]],
            "course_title": courses[conv["course_id"]],
        })

    return {"conversations": result, "count": len(result)}


@router.get("/{partner_id}/{course_id}")
async def get_thread(
    partner_id: str,
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    """Messages with one partner about one course, oldest first; marks received ones read"""
    me = user["user_id"]
    query = {
        "course_id": course_id,
        "$or": [
            {"sender_id": me, "receiver_id": partner_id},
            {"sender_id": partner_id, "receiver_id": me},
        ]
    }
    messages = await db.messages.find(query, {"_id": 0}).sort("created_at", 1).to_list(length=None)

    await db.messages.update_many(
        {"course_id": course_id, "sender_id": partner_id, "receiver_id": me, "read": False},
        {"$set": {"read": True}}
    )

    return {"messages": messages, "count": len(messages)}
