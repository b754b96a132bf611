"""
Database Session Management
One DatabaseManager per application, handed to routes through get_db
"""

import logging
from typing import Optional

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from learnhub.config import MONGO_URL, MONGO_DB_NAME

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages MongoDB connection lifecycle"""

    def __init__(
        self,
        mongo_url: Optional[str] = MONGO_URL,
        db_name: str = MONGO_DB_NAME,
        database: Optional[AsyncIOMotorDatabase] = None
    ):
        self.mongo_url = mongo_url
        self.db_name = db_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = database

    @property
    def is_connected(self) -> bool:
        return self.db is not None

    def connect(self):
        """Initialize MongoDB connection"""
        if self.db is not None:
            return
        if not self.mongo_url:
            raise RuntimeError("MONGO_URL environment variable required")

        self.client = AsyncIOMotorClient(self.mongo_url)
        self.db = self.client[self.db_name]
        logger.info("MongoDB connected (database=%s)", self.db_name)

    def disconnect(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB disconnected")

    def get_database(self) -> AsyncIOMotorDatabase:
        """Get database instance for dependency injection"""
        if self.db is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self.db


async def get_db(request: Request) -> AsyncIOMotorDatabase:
    """FastAPI dependency for database access"""
    return request.app.state.db_manager.get_database()


# ==================== DATABASE INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase):
    """
    Create database indexes
    Safe to call repeatedly; MongoDB ignores indexes that already exist
    """

    # Users
    await db.users.create_index("user_id", unique=True)
    await db.users.create_index("email", unique=True)
    await db.users.create_index([("role", ASCENDING), ("status", ASCENDING)])

    # Courses
    await db.courses.create_index("course_id", unique=True)
    await db.courses.create_index("course_url", unique=True)
    await db.courses.create_index("instructor_id")
    await db.courses.create_index([("category", ASCENDING), ("is_active", ASCENDING)])

    # Enrollments
    await db.enrollments.create_index("enrollment_id", unique=True)
    await db.enrollments.create_index([("user_id", ASCENDING), ("course_id", ASCENDING)], unique=True)
    await db.enrollments.create_index([("course_id", ASCENDING), ("status", ASCENDING)])
    await db.enrollments.create_index("enrolled_at")

    # Enrollment requests
    await db.enrollment_requests.create_index("request_id", unique=True)
    await db.enrollment_requests.create_index([("status", ASCENDING), ("created_at", DESCENDING)])
    await db.enrollment_requests.create_index("is_deleted")

    # Quiz submissions (one document per attempt)
    await db.quiz_submissions.create_index("submission_id", unique=True)
    await db.quiz_submissions.create_index(
        [("user_id", ASCENDING), ("course_url", ASCENDING),
         ("day_number", ASCENDING), ("attempt_number", ASCENDING)],
        unique=True
    )
    await db.quiz_submissions.create_index([("user_id", ASCENDING), ("is_completed", ASCENDING)])

    # Reviews
    await db.reviews.create_index([("course_id", ASCENDING), ("student_id", ASCENDING)], unique=True)

    # Contact requests
    await db.contact_requests.create_index("contact_id", unique=True)
    await db.contact_requests.create_index([("status", ASCENDING), ("created_at", DESCENDING)])

    # Community
    await db.discussions.create_index("discussion_id", unique=True)
    await db.discussions.create_index([("course_id", ASCENDING), ("created_at", DESCENDING)])
    await db.messages.create_index("message_id", unique=True)
    await db.messages.create_index([("sender_id", ASCENDING), ("receiver_id", ASCENDING), ("course_id", ASCENDING)])
    await db.messages.create_index([("receiver_id", ASCENDING), ("read", ASCENDING)])

    # Notifications
    await db.notifications.create_index("notification_id", unique=True)
    await db.notifications.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])

    logger.info("Database indexes ensured")
