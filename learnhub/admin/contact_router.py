"""
Contact Requests
Public contact form, reviewed by admins
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field, field_validator

from learnhub.auth.dependencies import require_admin
from learnhub.core.identifiers import new_id, CONTACT_REQUEST_PREFIX
from learnhub.db import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Contact Requests"])

CONTACT_STATUS_PATTERN = "^(new|read|replied)$"


class ContactRequestCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=254)
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v


class ContactStatusUpdate(BaseModel):
    status: str = Field(..., pattern=CONTACT_STATUS_PATTERN)


@router.post("/contact-requests", status_code=201)
async def submit_contact_request(
    data: ContactRequestCreate,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    now = datetime.utcnow()
    contact = {
        "contact_id": new_id(CONTACT_REQUEST_PREFIX),
        **data.model_dump(),
        "status": "new",
        "created_at": now,
        "updated_at": now,
    }
    await db.contact_requests.insert_one(contact)
    contact.pop("_id", None)

    logger.info("Contact request %s received", contact["contact_id"])
    return {
        "success": True,
        "message": "Contact request submitted successfully",
        "contact_request": contact
    }


@router.get("/admin/contact-requests")
async def list_contact_requests(
    status: Optional[str] = Query(None, pattern=CONTACT_STATUS_PATTERN),
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    query = {"status": status} if status else {}
    cursor = db.contact_requests.find(query, {"_id": 0}).sort("created_at", -1)
    contacts = await cursor.to_list(length=None)
    return {"contact_requests": contacts, "count": len(contacts)}


@router.put("/admin/contact-requests/{contact_id}/status")
async def update_contact_status(
    contact_id: str,
    data: ContactStatusUpdate,
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    result = await db.contact_requests.update_one(
        {"contact_id": contact_id},
        {"$set": {"status": data.status, "updated_at": datetime.utcnow()}}
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Contact request not found")

    contact = await db.contact_requests.find_one({"contact_id": contact_id}, {"_id": 0})
    return {
        "success": True,
        "message": "Contact request status updated",
        "contact_request": contact
    }
