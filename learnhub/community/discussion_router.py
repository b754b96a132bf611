from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field

from learnhub.auth.dependencies import get_current_user, require_instructor, ROLE_ADMIN
from learnhub.community.access import verify_course_member
from learnhub.core.identifiers import new_id, DISCUSSION_PREFIX, REPLY_PREFIX
from learnhub.db import get_db
from learnhub.notifications.service import notify

router = APIRouter(tags=["Community & Discussions"])

# ==================== MODELS ====================

class DiscussionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=10000)


class ReplyCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


def discussion_view(doc: dict, user_id: str) -> dict:
    likes = doc.get("likes", [])
    return {
        **{k: v for k, v in doc.items() if k not in ("_id", "likes")},
        "like_count": len(likes),
        "liked_by_me": user_id in likes,
        "reply_count": len(doc.get("replies", [])),
    }


async def get_discussion_or_404(db: AsyncIOMotorDatabase, discussion_id: str) -> dict:
    discussion = await db.discussions.find_one({"discussion_id": discussion_id}, {"_id": 0})
    if not discussion:
        raise HTTPException(status_code=404, detail="Discussion not found")
    return discussion

# ==================== COURSE DISCUSSIONS ====================

@router.get("/courses/{course_id}/discussions")
async def get_course_discussions(
    course_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    course = await verify_course_member(db, course_id, user)

    cursor = db.discussions.find(
        {"course_id": course["course_id"]}, {"_id": 0}
    ).sort("created_at", -1).skip(skip).limit(limit)
    discussions = await cursor.to_list(length=limit)

    return {
        "discussions": [discussion_view(d, user["user_id"]) for d in discussions],
        "count": len(discussions)
    }


@router.post("/courses/{course_id}/discussions", status_code=201)
async def create_discussion(
    course_id: str,
    data: DiscussionCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    course = await verify_course_member(db, course_id, user)

    now = datetime.utcnow()
    discussion = {
        "discussion_id": new_id(DISCUSSION_PREFIX),
        "course_id": course["course_id"],
        "user_id": user["user_id"],
        "user_name": user.get("name"),
        "user_role": user.get("role"),
        "title": data.title,
        "content": data.content,
        "replies": [],
        "likes": [],
        "created_at": now,
        "updated_at": now,
    }
    await db.discussions.insert_one(discussion)

    return {
        "success": True,
        "discussion": discussion_view(discussion, user["user_id"])
    }


@router.post("/discussions/{discussion_id}/replies", status_code=201)
async def add_reply(
    discussion_id: str,
    data: ReplyCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    discussion = await get_discussion_or_404(db, discussion_id)
    await verify_course_member(db, discussion["course_id"], user)

    now = datetime.utcnow()
    reply = {
        "reply_id": new_id(REPLY_PREFIX),
        "user_id": user["user_id"],
        "user_name": user.get("name"),
        "user_role": user.get("role"),
        "content": data.content,
        "created_at": now,
    }
    await db.discussions.update_one(
        {"discussion_id": discussion_id},
        {"$push": {"replies": reply}, "$set": {"updated_at": now}}
    )

    if discussion["user_id"] != user["user_id"]:
        await notify(
            db, discussion["user_id"],
            title="New reply to your discussion",
            message=f"{user.get('name', 'Someone')} replied to \"{discussion['title']}\"",
            type="discussion",
            link=f"/courses/{discussion['course_id']}/discussions"
        )

    return {"success": True, "reply": reply}


@router.post("/discussions/{discussion_id}/like")
async def toggle_like(
    discussion_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    discussion = await get_discussion_or_404(db, discussion_id)
    await verify_course_member(db, discussion["course_id"], user)

    liked = user["user_id"] in discussion.get("likes", [])
    operator = "$pull" if liked else "$addToSet"
    await db.discussions.update_one(
        {"discussion_id": discussion_id},
        {operator: {"likes": user["user_id"]}}
    )

    updated = await get_discussion_or_404(db, discussion_id)
    return {
        "success": True,
        "liked": not liked,
        "like_count": len(updated.get("likes", []))
    }


@router.delete("/discussions/{discussion_id}")
async def delete_discussion(
    discussion_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    discussion = await get_discussion_or_404(db, discussion_id)

    if discussion["user_id"] != user["user_id"] and user.get("role") != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="Only the author or an admin can delete this discussion")

    await db.discussions.delete_one({"discussion_id": discussion_id})
    return {"success": True, "message": "Discussion deleted"}

# ==================== INSTRUCTOR VIEW ====================

@router.get("/instructor/discussions")
async def get_instructor_discussions(
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: dict = Depends(require_instructor)
):
    courses = await db.courses.find(
        {"instructor_id": instructor["user_id"]}, {"_id": 0, "course_id": 1, "title": 1}
    ).to_list(length=None)
    titles = {c["course_id"]: c["title"] for c in courses}

    discussions = await db.discussions.find(
        {"course_id": {"$in": list(titles)}}, {"_id": 0}
    ).sort("created_at", -1).to_list(length=None)

    return {
        "discussions": [
            {**discussion_view(d, instructor["user_id"]), "course_title": titles[d["course_id"]]}
            for d in discussions
        ],
        "count": len(discussions)
    }
