"""
Database maintenance commands

    python -m learnhub.maintenance indexes
    python -m learnhub.maintenance orphans [--dry-run]
    python -m learnhub.maintenance backfill-progress

All commands are idempotent and safe to re-run.
"""

import argparse
import asyncio
import logging
import sys
from typing import Dict

from motor.motor_asyncio import AsyncIOMotorDatabase

from learnhub.courses.database import get_roadmap_length
from learnhub.db import DatabaseManager, create_indexes
from learnhub.enrollments.progress_service import reconcile_enrollment
from learnhub.logging_setup import configure_logging

logger = logging.getLogger(__name__)

# (collection, field, referenced collection, referenced field)
ORPHAN_REFERENCES = [
    ("messages", "sender_id", "users", "user_id"),
    ("messages", "receiver_id", "users", "user_id"),
    ("messages", "course_id", "courses", "course_id"),
    ("notifications", "user_id", "users", "user_id"),
    ("discussions", "course_id", "courses", "course_id"),
    ("reviews", "course_id", "courses", "course_id"),
    ("reviews", "student_id", "users", "user_id"),
    ("enrollments", "user_id", "users", "user_id"),
    ("enrollments", "course_id", "courses", "course_id"),
    ("quiz_submissions", "user_id", "users", "user_id"),
    ("quiz_submissions", "course_url", "courses", "course_url"),
]


async def ensure_indexes(db: AsyncIOMotorDatabase):
    await create_indexes(db)


async def cleanup_orphans(db: AsyncIOMotorDatabase, dry_run: bool = False) -> Dict[str, int]:
    """
    Remove documents pointing at users or courses that no longer exist
    Returns counts keyed "<collection>.<field>"
    """
    known = {}
    counts = {}
    for collection, field, ref_collection, ref_field in ORPHAN_REFERENCES:
        key = (ref_collection, ref_field)
        if key not in known:
            known[key] = await db[ref_collection].distinct(ref_field)

        query = {field: {"$nin": known[key]}}
        label = f"{collection}.{field}"
        if dry_run:
            counts[label] = await db[collection].count_documents(query)
        else:
            counts[label] = (await db[collection].delete_many(query)).deleted_count

        if counts[label]:
            logger.info("%s %d orphaned %s", "Found" if dry_run else "Deleted", counts[label], label)

    return counts


async def backfill_progress(db: AsyncIOMotorDatabase) -> int:
    """
    Recompute completed days, progress and status of every enrollment from
    its course roadmap; enrollments without a version get one
    Returns the number of enrollments written
    """
    lengths = {
        c["course_id"]: get_roadmap_length(c)
        for c in await db.courses.find({}, {"_id": 0, "course_id": 1, "roadmap": 1}).to_list(length=None)
    }

    changed = 0
    docs = await db.enrollments.find({}, {"_id": 0}).to_list(length=None)
    for doc in docs:
        if doc["course_id"] not in lengths:
            logger.warning("Enrollment %s references missing course %s", doc["enrollment_id"], doc["course_id"])
            continue
        if await reconcile_enrollment(db, doc, lengths[doc["course_id"]]):
            changed += 1

    logger.info("Backfilled progress on %d of %d enrollments", changed, len(docs))
    return changed


# ==================== CLI ====================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="learnhub.maintenance", description="LearnHub database maintenance")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("indexes", help="create all indexes")
    orphans = sub.add_parser("orphans", help="delete records referencing missing users or courses")
    orphans.add_argument("--dry-run", action="store_true", help="only report counts")
    sub.add_parser("backfill-progress", help="reconcile every enrollment with its course roadmap")

    return parser


async def run(args: argparse.Namespace, manager: DatabaseManager):
    manager.connect()
    try:
        db = manager.get_database()
        if args.command == "indexes":
            await ensure_indexes(db)
        elif args.command == "orphans":
            counts = await cleanup_orphans(db, dry_run=args.dry_run)
            logger.info("Orphan totals: %s", counts)
        elif args.command == "backfill-progress":
            await backfill_progress(db)
    finally:
        manager.disconnect()


def main(argv=None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)

    try:
        asyncio.run(run(args, DatabaseManager()))
    except RuntimeError as e:
        logger.error("Maintenance command failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
