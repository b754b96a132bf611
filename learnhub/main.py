import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.admin.admin_router import router as admin_router
from learnhub.admin.contact_router import router as contact_router
from learnhub.auth.auth_router import router as auth_router
from learnhub.auth.user_router import router as user_router
from learnhub.community.discussion_router import router as discussion_router
from learnhub.community.message_router import router as message_router
from learnhub.config import CORS_ORIGINS, VERSION
from learnhub.courses.course_router import router as course_router
from learnhub.db import DatabaseManager, create_indexes
from learnhub.enrollments.enrollment_router import router as enrollment_router
from learnhub.enrollments.request_admin_router import router as request_admin_router
from learnhub.instructors.profile_router import router as instructor_profile_router
from learnhub.leaderboard.leaderboard_router import router as leaderboard_router
from learnhub.logging_setup import configure_logging
from learnhub.notifications.notification_router import router as notification_router
from learnhub.quizzes.quiz_router import router as quiz_router

logger = logging.getLogger(__name__)


def create_app(database: Optional[AsyncIOMotorDatabase] = None) -> FastAPI:
    """
    Build the API application
    Pass `database` to run against an already-open database (tests, scripts)
    """
    configure_logging()

    app = FastAPI(title="LearnHub", version=VERSION)
    app.state.db_manager = DatabaseManager(database=database)

    @app.on_event("startup")
    async def startup_event():
        manager = app.state.db_manager
        if not manager.is_connected:
            manager.connect()
        await create_indexes(manager.get_database())
        logger.info("LearnHub API started (version=%s)", VERSION)

    @app.on_event("shutdown")
    async def shutdown_event():
        app.state.db_manager.disconnect()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==================== ROUTER REGISTRATION ====================
    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(course_router)
    app.include_router(enrollment_router)
    app.include_router(request_admin_router)
    app.include_router(quiz_router)
    app.include_router(leaderboard_router)
    app.include_router(discussion_router)
    app.include_router(message_router)
    app.include_router(notification_router)
    app.include_router(admin_router)
    app.include_router(contact_router)
    app.include_router(instructor_profile_router)
    # ============================================================

    @app.get("/health")
    async def health():
        return {"status": "ok", "database": app.state.db_manager.is_connected}

    @app.get("/version")
    async def version():
        return {"version": VERSION}

    return app


app = create_app()
