"""MongoDB client and helpers.

This module builds the process-wide `MongoClient` and provides small
helpers used by the application, scripts and tests. The client is created
once when the app module is imported; pymongo connects lazily, so no
network traffic happens until the first query.
"""

import logging

from fastapi import Request
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

logger = logging.getLogger("studybuddy.db")

USERS = "users"
COURSES = "courses"
STUDY_SESSIONS = "study_sessions"
TASKS = "tasks"


def create_client(url: str, timeout_ms: int = 5000) -> MongoClient:
    """Create the shared `MongoClient` for `url`.

    `timeout_ms` bounds server selection so a missing database fails a
    request quickly instead of hanging it.
    """
    return MongoClient(url, serverSelectionTimeoutMS=timeout_ms, tz_aware=True)


def ensure_indexes(db: Database) -> None:
    """Create the indexes the services rely on.

    The unique index on `users.emailAddress` backs the email uniqueness
    check so two concurrent creates cannot both succeed.
    """
    db[USERS].create_index([("emailAddress", ASCENDING)], unique=True, name="uniq_email")
    db[TASKS].create_index([("courseId", ASCENDING)], name="task_course")
    db[TASKS].create_index([("userId", ASCENDING)], name="task_user")


def ping_database(db: Database) -> bool:
    """Ping the server and report on the `users` collection.

    Returns True when the server answered. Failures are logged, never
    raised, so this is safe to call from startup and health checks.
    """
    try:
        db.client.admin.command("ping")
        logger.info("database ping successful (%s)", db.name)
        if USERS in db.list_collection_names():
            logger.info("users collection found and accessible")
        else:
            logger.info("users collection not found (will be created on first insert)")
        count = db[USERS].count_documents({})
        logger.info("users collection has %d document(s)", count)
        return True
    except Exception as exc:
        logger.error("database ping failed: %s", exc)
        return False


def get_db(request: Request) -> Database:
    """Return the shared `Database` for FastAPI dependency injection."""
    return request.app.state.db
