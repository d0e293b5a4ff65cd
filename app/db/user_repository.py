"""
app/db/user_repository.py

Purpose: User persistence

- All reads/writes of the users collection go through here
- Translates driver failures (bad ObjectId, unique-index collisions)
  into AccountsError kinds
- Hides the password hash and reset fields unless explicitly requested
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError

from app.core.errors import duplicate_fields
from app.core.exceptions import DuplicateKeyError, InvalidIdError
from app.core.logging import get_logger

logger = get_logger(__name__)

PUBLIC_PROJECTION = {"password": 0, "reset_password_token": 0, "reset_password_expire": 0}
WITH_PASSWORD_PROJECTION = {"reset_password_token": 0, "reset_password_expire": 0}


def to_object_id(user_id: Any) -> ObjectId:
    """
    Parses a client-supplied id.

    Raises:
        InvalidIdError: The value is not a valid ObjectId
    """
    if isinstance(user_id, ObjectId):
        return user_id
    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError) as exc:
        raise InvalidIdError(field="_id", value=str(user_id)) from exc


class UserRepository:
    """Data access for user documents."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    @staticmethod
    def _projection(include_password: bool) -> Dict[str, int]:
        return WITH_PASSWORD_PROJECTION if include_password else PUBLIC_PROJECTION

    async def create(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """
        Inserts a new user and returns it without hidden fields.

        Raises:
            DuplicateKeyError: Email already registered
        """
        try:
            result = await self.collection.insert_one(document)
        except MongoDuplicateKeyError as exc:
            raise DuplicateKeyError(field=duplicate_fields(exc)) from exc

        created = {k: v for k, v in document.items() if k not in PUBLIC_PROJECTION}
        created["_id"] = result.inserted_id
        return created

    async def find_by_id(self, user_id: Any, include_password: bool = False) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one(
            {"_id": to_object_id(user_id)},
            self._projection(include_password)
        )

    async def find_by_email(self, email: str, include_password: bool = False) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one(
            {"email": email},
            self._projection(include_password)
        )

    async def find_by_reset_token(self, token_hash: str, now: datetime) -> Optional[Dict[str, Any]]:
        """
        Finds the user holding an unexpired reset token with this hash.
        """
        return await self.collection.find_one(
            {
                "reset_password_token": token_hash,
                "reset_password_expire": {"$gt": now},
            },
            PUBLIC_PROJECTION
        )

    async def list_all(self) -> List[Dict[str, Any]]:
        cursor = self.collection.find({}, PUBLIC_PROJECTION)
        return await cursor.to_list(length=None)

    async def set_reset_token(self, user_id: Any, token_hash: str, expires_at: datetime) -> None:
        """
        Stores a pending reset token. Touches only the reset fields, so
        other invalid data on the document cannot block issuance.
        """
        await self.collection.update_one(
            {"_id": to_object_id(user_id)},
            {
                "$set": {
                    "reset_password_token": token_hash,
                    "reset_password_expire": expires_at,
                }
            }
        )

    async def clear_reset_token(self, user_id: Any) -> None:
        await self.collection.update_one(
            {"_id": to_object_id(user_id)},
            {"$unset": {"reset_password_token": "", "reset_password_expire": ""}}
        )

    async def update_password(self, user_id: Any, password_hash: str) -> None:
        """
        Replaces the password hash and drops any pending reset token
        in the same write.
        """
        await self.collection.update_one(
            {"_id": to_object_id(user_id)},
            {
                "$set": {"password": password_hash},
                "$unset": {"reset_password_token": "", "reset_password_expire": ""},
            }
        )

    async def update_fields(self, user_id: Any, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Applies a partial update and returns the updated document,
        or None when no user has this id.

        Raises:
            DuplicateKeyError: New email belongs to another account
        """
        try:
            return await self.collection.find_one_and_update(
                {"_id": to_object_id(user_id)},
                {"$set": fields},
                projection=PUBLIC_PROJECTION,
                return_document=ReturnDocument.AFTER
            )
        except MongoDuplicateKeyError as exc:
            raise DuplicateKeyError(field=duplicate_fields(exc)) from exc

    async def delete(self, user_id: Any) -> bool:
        result = await self.collection.delete_one({"_id": to_object_id(user_id)})
        return result.deleted_count > 0
