"""
app/db/indexes.py

Purpose: Database index management

- Unique email index (backs the duplicate-email error)
- Lookup index for pending reset tokens
- Role index for admin listings
"""

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING

from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes(users: AsyncIOMotorCollection):
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        logger.info("Creating database indexes...")

        await users.create_index([("email", ASCENDING)], unique=True, name="email_unique")
        logger.debug("Created unique index on users.email")

        await users.create_index(
            [("reset_password_token", ASCENDING)],
            sparse=True,
            name="reset_token_idx"
        )
        logger.debug("Created sparse index on users.reset_password_token")

        await users.create_index([("role", ASCENDING)], name="role_idx")
        logger.debug("Created index on users.role")

        user_indexes = await users.index_information()
        logger.info(f"Index summary: Users={len(user_indexes)}")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise
