"""
Promote an existing account to admin.

Run:
    python -m scripts.create_admin someone@example.com
"""

import argparse
import asyncio
import sys

from app.core.config import load_settings
from app.core.logging import setup_logging, get_logger
from app.db.mongo import close_mongo_connection, connect_to_mongo, get_users_collection
from app.db.user_repository import UserRepository
from app.models.user import UserRole
from utils.validation_utils import normalize_email

logger = get_logger(__name__)


async def promote(email: str) -> bool:
    settings = load_settings()
    setup_logging(settings)

    await connect_to_mongo(settings)
    try:
        users = UserRepository(get_users_collection())
        user = await users.find_by_email(normalize_email(email))
        if not user:
            logger.error(f"No account registered with {email}")
            return False

        await users.update_fields(user["_id"], {"role": UserRole.ADMIN.value})
        logger.info(f"{user['email']} is now an admin", extra={"user_id": str(user["_id"])})
        return True
    finally:
        await close_mongo_connection()


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email", help="Email of the account to promote")
    args = parser.parse_args()
    return 0 if asyncio.run(promote(args.email)) else 1


if __name__ == "__main__":
    sys.exit(main())
