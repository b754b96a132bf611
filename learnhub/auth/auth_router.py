import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field, field_validator
from pymongo.errors import DuplicateKeyError

from learnhub.auth.auth_utils import hash_password, verify_password, create_access_token
from learnhub.auth.dependencies import get_current_user, ROLE_STUDENT, ROLE_INSTRUCTOR
from learnhub.auth.devices import record_device
from learnhub.core.identifiers import new_id, USER_PREFIX
from learnhub.db import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

# ==================== MODELS ====================

class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=8, max_length=128)
    role: str = ROLE_STUDENT

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v not in (ROLE_STUDENT, ROLE_INSTRUCTOR):
            raise ValueError("Role must be student or instructor")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    avatar: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=1000)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)


def public_user(user: dict) -> dict:
    return {
        "user_id": user["user_id"],
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role"),
        "status": user.get("status"),
        "avatar": user.get("avatar"),
        "bio": user.get("bio"),
        "created_at": user.get("created_at"),
    }

# ==================== ENDPOINTS ====================

@router.post("/signup", status_code=201)
async def signup(data: SignupRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Register a student or instructor
    Instructors start as pending until an admin activates them
    """
    if await db.users.find_one({"email": data.email}):
        raise HTTPException(status_code=409, detail="Email already registered")

    now = datetime.utcnow()
    user = {
        "user_id": new_id(USER_PREFIX),
        "name": data.name,
        "email": data.email,
        "password_hash": hash_password(data.password),
        "role": data.role,
        "status": "pending" if data.role == ROLE_INSTRUCTOR else "active",
        "avatar": None,
        "bio": None,
        "created_at": now,
        "updated_at": now,
        "last_login_at": None,
    }

    try:
        await db.users.insert_one(user)
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail="Email already registered")

    logger.info("User %s registered as %s", user["user_id"], user["role"])

    return {
        "success": True,
        "token": create_access_token(user["user_id"], user["role"]),
        "user": public_user(user),
    }


@router.post("/login")
async def login(
    data: LoginRequest,
    request: Request,
    user_agent: Optional[str] = Header(None),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    user = await db.users.find_one({"email": data.email.strip().lower()})
    if not user or not verify_password(data.password, user.get("password_hash", "")):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if user.get("status") in ("inactive", "suspended"):
        raise HTTPException(status_code=403, detail=f"Account is {user['status']}")

    await db.users.update_one(
        {"user_id": user["user_id"]},
        {"$set": {"last_login_at": datetime.utcnow()}}
    )
    await record_device(db, user["user_id"], user_agent, request.client.host if request.client else None)

    return {
        "success": True,
        "token": create_access_token(user["user_id"], user["role"]),
        "user": public_user(user),
    }


@router.get("/me")
async def get_me(user: dict = Depends(get_current_user)):
    return public_user(user)


@router.put("/profile")
async def update_profile(
    data: ProfileUpdate,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    updates["updated_at"] = datetime.utcnow()
    await db.users.update_one({"user_id": user["user_id"]}, {"$set": updates})

    return {
        "success": True,
        "message": "Profile updated",
        "user": public_user({**user, **updates}),
    }


@router.put("/password")
async def change_password(
    data: PasswordChange,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    record = await db.users.find_one({"user_id": user["user_id"]})
    if not verify_password(data.current_password, record.get("password_hash", "")):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    await db.users.update_one(
        {"user_id": user["user_id"]},
        {"$set": {"password_hash": hash_password(data.new_password), "updated_at": datetime.utcnow()}}
    )
    return {"success": True, "message": "Password updated"}
