"""
Database initialization script

Run once (or after schema changes) to create the users indexes:
    python -m scripts.init_db
"""

import asyncio

from app.core.config import load_settings
from app.core.logging import setup_logging, get_logger
from app.db.indexes import create_indexes
from app.db.mongo import close_mongo_connection, connect_to_mongo, get_users_collection

logger = get_logger(__name__)


async def main():
    settings = load_settings()
    setup_logging(settings)

    await connect_to_mongo(settings)
    try:
        users = get_users_collection()
        await create_indexes(users)

        indexes = await users.index_information()
        for name, info in indexes.items():
            logger.info(f"{name}: {info.get('key')} unique={info.get('unique', False)}")
    finally:
        await close_mongo_connection()


if __name__ == "__main__":
    asyncio.run(main())
