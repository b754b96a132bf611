"""
Enrollment request review (admin)
Approve / reject manual payments, with a soft-delete trash for old requests
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.auth.dependencies import require_admin
from learnhub.db import get_db
from learnhub.enrollments.database import (
    get_enrollment_request, list_enrollment_requests, set_request_status,
    activate_enrollment, remove_pending_enrollment, reopen_request,
    soft_delete_requests, restore_requests, purge_requests
)
from learnhub.enrollments.models import RequestIds
from learnhub.notifications.service import notify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/enrollment-requests", tags=["Admin - Enrollment Requests"])


@router.get("")
async def get_enrollment_requests(
    status: Optional[str] = Query(None, pattern="^(pending|approved|rejected)$"),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin)
):
    requests = await list_enrollment_requests(db, status=status)
    return {"requests": requests, "count": len(requests)}


@router.get("/deleted")
async def get_deleted_requests(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin)
):
    requests = await list_enrollment_requests(db, deleted=True)
    return {"requests": requests, "count": len(requests)}


@router.put("/{request_id}/approve")
async def approve_enrollment_request(
    request_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin)
):
    """Payment verified: activate the enrollment and notify the student"""
    request = await get_enrollment_request(db, request_id)
    if not request or request.get("is_deleted"):
        raise HTTPException(status_code=404, detail="Enrollment request not found")

    if not await set_request_status(db, request_id, "approved", admin["user_id"]):
        raise HTTPException(status_code=409, detail=f"Request already {request['status']}")

    try:
        enrollment = await activate_enrollment(db, request["course_id"], request["user_id"])

        await notify(
            db, request["user_id"],
            title="Enrollment approved",
            message=f"Your enrollment in {request['course_name']} has been approved.",
            type="enrollment",
            link=f"/courses/{request['course_id']}"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Activating enrollment for request %s failed, reopening it", request_id)
        await reopen_request(db, request_id, "approved")
        raise HTTPException(status_code=500, detail=str(e))

    logger.info("Enrollment request %s approved by %s", request_id, admin["user_id"])

    return {
        "success": True,
        "message": "Enrollment request approved",
        "enrollment_id": enrollment["enrollment_id"],
        "status": enrollment["status"]
    }


@router.put("/{request_id}/reject")
async def reject_enrollment_request(
    request_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin)
):
    """Payment not verified: drop the pending enrollment and notify the student"""
    request = await get_enrollment_request(db, request_id)
    if not request or request.get("is_deleted"):
        raise HTTPException(status_code=404, detail="Enrollment request not found")

    if not await set_request_status(db, request_id, "rejected", admin["user_id"]):
        raise HTTPException(status_code=409, detail=f"Request already {request['status']}")

    await remove_pending_enrollment(db, request["course_id"], request["user_id"])

    await notify(
        db, request["user_id"],
        title="Enrollment request rejected",
        message=f"We could not verify your payment for {request['course_name']}.",
        type="enrollment"
    )
    logger.info("Enrollment request %s rejected by %s", request_id, admin["user_id"])

    return {"success": True, "message": "Enrollment request rejected"}


@router.delete("")
async def delete_enrollment_requests(
    data: RequestIds,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin)
):
    """Move requests to the trash"""
    count = await soft_delete_requests(db, data.request_ids)
    return {"success": True, "deleted": count}


@router.post("/restore")
async def restore_enrollment_requests(
    data: RequestIds,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin)
):
    count = await restore_requests(db, data.request_ids)
    return {"success": True, "restored": count}


@router.delete("/permanent")
async def purge_enrollment_requests(
    data: RequestIds,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin)
):
    """Permanently delete requests that are already in the trash"""
    count = await purge_requests(db, data.request_ids)
    logger.info("Permanently deleted %d enrollment requests", count)
    return {"success": True, "deleted": count}
