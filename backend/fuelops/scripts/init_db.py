"""Initialize database tables."""

import asyncio
import logging

from fuelops.core.database import init_db, get_db_debug_info

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
    logger.info("Initializing database tables on %s...", get_db_debug_info().get("url"))
    await init_db()
    logger.info("Database initialization complete!")


if __name__ == "__main__":
    asyncio.run(main())
