"""
create_tables.py
----------------
One-shot script to create all database tables for DATABASE_URL.
The app also does this on startup while AUTO_CREATE_TABLES is true;
use this when that is switched off in production.

Usage:
    python create_tables.py
"""

import asyncio

from msgboard.core.config import settings
from msgboard.storage import SqlStorage


async def create_all_tables() -> None:
    storage = SqlStorage(settings.DATABASE_URL, echo=True)
    try:
        await storage.init()
    finally:
        await storage.close()
    print("✅  All tables created successfully.")


if __name__ == "__main__":
    asyncio.run(create_all_tables())
