import logging
from typing import Optional, Dict, Any
from datetime import datetime, timezone

from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError
from fastapi import HTTPException
from src.database.connection import get_db
from configs.config import get_config

logger = logging.getLogger(__name__)
cfg = get_config()


class UserRepository:
    """Repository for managing user documents in MongoDB."""

    def __init__(self, db: Optional[Database] = None):
        self._db = db if db is not None else get_db()
        self._collection: Collection = self._db[cfg.USERS_COLLECTION]

    def create_user(
        self,
        email: str,
        hashed_password: str,
        name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a new password-authenticated user."""
        now = datetime.now(timezone.utc)

        user_doc = {
            "email": email.lower(),
            "hashed_password": hashed_password,
            "name": name,
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = self._collection.insert_one(user_doc)
            user_doc["_id"] = str(result.inserted_id)
            logger.info("User %s registered", user_doc["email"])
            return user_doc
        except DuplicateKeyError:
            logger.warning("Registration failed: user %s already exists.", email)
            raise HTTPException(status_code=400, detail="Email already registered")

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Fetch a user by their email address."""
        user = self._collection.find_one({"email": email.lower()})
        if user:
            user["_id"] = str(user["_id"])
        return user
