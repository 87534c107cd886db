"""
Repository functions for meeting action items (todos).

Each function is a thin wrapper around a MongoDB operation,
keeping the database access pattern consistent and testable.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from configs.config import get_config
from src.database.connection import get_db

logger = logging.getLogger(__name__)

cfg = get_config()

DEFAULT_PRIORITY = "Medium"
PRIORITIES = ("High", "Medium", "Low")


def normalize_priority(priority: Optional[str]) -> str:
    """Map free-form LLM priorities onto High / Medium / Low."""
    if not priority:
        return DEFAULT_PRIORITY
    candidate = priority.strip().capitalize()
    return candidate if candidate in PRIORITIES else DEFAULT_PRIORITY


# ── Create ───────────────────────────────────────────────────────────────


def replace_todos(meeting_id: str, todos: Iterable[Dict]) -> List[Dict]:
    """Delete a meeting's existing todos and insert the given ones."""
    db = get_db()
    now = datetime.now(timezone.utc)
    documents = [
        {
            "todo_id": str(uuid.uuid4()),
            "meeting_id": meeting_id,
            "description": todo["description"].strip(),
            "priority": normalize_priority(todo.get("priority")),
            "is_complete": False,
            "created_at": now,
        }
        for todo in todos
        if todo.get("description", "").strip()
    ]

    deleted = db[cfg.TODOS_COLLECTION].delete_many({"meeting_id": meeting_id})
    if documents:
        db[cfg.TODOS_COLLECTION].insert_many(documents)
    for doc in documents:
        doc.pop("_id", None)

    logger.info(
        "Meeting %s todos replaced: %d removed, %d created",
        meeting_id, deleted.deleted_count, len(documents),
    )
    return documents


# ── Read ─────────────────────────────────────────────────────────────────


def get_todos(meeting_id: str) -> List[Dict]:
    """Return all todos for a meeting in creation order."""
    try:
        db = get_db()
        return list(
            db[cfg.TODOS_COLLECTION]
            .find({"meeting_id": meeting_id}, {"_id": 0})
            .sort("created_at", 1)
        )
    except PyMongoError as exc:
        logger.error(
            "Error getting todos for meeting %s: %s",
            meeting_id, exc, exc_info=True,
        )
        return []


def get_todos_for_meetings(meeting_ids: List[str]) -> List[Dict]:
    """Return the completion flags of every todo across several meetings."""
    if not meeting_ids:
        return []
    try:
        db = get_db()
        return list(
            db[cfg.TODOS_COLLECTION].find(
                {"meeting_id": {"$in": meeting_ids}},
                {"_id": 0, "todo_id": 1, "meeting_id": 1, "is_complete": 1},
            )
        )
    except PyMongoError as exc:
        logger.error("Error getting todos for meetings: %s", exc, exc_info=True)
        return []


def get_todo(todo_id: str) -> Optional[Dict]:
    """Retrieve a single todo by its ID."""
    try:
        db = get_db()
        return db[cfg.TODOS_COLLECTION].find_one({"todo_id": todo_id}, {"_id": 0})
    except PyMongoError as exc:
        logger.error("Error getting todo %s: %s", todo_id, exc, exc_info=True)
        return None


# ── Update ───────────────────────────────────────────────────────────────


def set_todo_completion(todo_id: str, is_complete: bool) -> Optional[Dict]:
    """Set the completion flag and return the updated todo."""
    try:
        db = get_db()
        updated = db[cfg.TODOS_COLLECTION].find_one_and_update(
            {"todo_id": todo_id},
            {"$set": {"is_complete": is_complete}},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as exc:
        logger.error("Error updating todo %s: %s", todo_id, exc, exc_info=True)
        return None
    if updated is None:
        logger.warning("Todo %s completion update failed — no match", todo_id)
    return updated


# ── Delete ───────────────────────────────────────────────────────────────


def delete_todos_for_meeting(meeting_id: str) -> int:
    """Remove every todo attached to a meeting; returns how many."""
    try:
        db = get_db()
        result = db[cfg.TODOS_COLLECTION].delete_many({"meeting_id": meeting_id})
    except PyMongoError as exc:
        logger.error(
            "Error deleting todos for meeting %s: %s",
            meeting_id, exc, exc_info=True,
        )
        return 0
    logger.debug(
        "Deleted %d todos for meeting %s", result.deleted_count, meeting_id
    )
    return result.deleted_count
