#!/usr/bin/env python3
"""
Initialize the feedbacks table.
Run this once after setting up the database.
"""
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from feedbox.config import Settings
from feedbox.store import SQLAlchemyFeedbackStore, build_store


async def init_db(settings: Settings) -> None:
    """Create all tables."""
    store = build_store(settings)
    if not isinstance(store, SQLAlchemyFeedbackStore):
        print("In-memory store selected, nothing to initialize.")
        return

    try:
        await store.create_tables()
        print("Database schema initialized successfully!")
    finally:
        await store.close()


if __name__ == "__main__":
    asyncio.run(init_db(Settings.from_env()))
