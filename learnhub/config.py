"""
LearnHub Configuration
Environment-driven settings, read once at import
"""

import os

# MongoDB
MONGO_URL = os.getenv("MONGO_URL")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "learnhub_db")

# Auth tokens
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "learnhub-dev-secret")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

# HTTP
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
VERSION = os.getenv("VERSION", "unknown")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Optimistic concurrency on enrollment progress writes
PROGRESS_UPDATE_MAX_RETRIES = int(os.getenv("PROGRESS_UPDATE_MAX_RETRIES", "5"))

# Listing limits
NOTIFICATIONS_PAGE_SIZE = 20

# Devices remembered per user (most recent logins first)
MAX_CONNECTED_DEVICES = int(os.getenv("MAX_CONNECTED_DEVICES", "10"))
