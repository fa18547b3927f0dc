"""Feedback persistence.

``FeedbackStore`` is the seam between the HTTP handlers and storage. The
SQLAlchemy implementation talks to any async engine (PostgreSQL via asyncpg in
production, SQLite via aiosqlite in tests); the in-memory one keeps rows in a
list and is selected with ``DATABASE_URL=memory://``.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Mapping, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from feedbox.config import Settings, mask_database_url
from feedbox.errors import PersistenceError
from feedbox.models import Base, FeedbackEntry, newest_first

logger = logging.getLogger("Feedbox.store")

T = TypeVar("T")

FEEDBACK_FIELDS = ("name", "relationship", "mood", "message", "rating", "timestamp")


class FeedbackStore(ABC):
    """Interface for feedback persistence."""

    @abstractmethod
    async def insert(self, fields: Mapping[str, Any]) -> FeedbackEntry:
        """Persist a new entry and return it with its assigned id."""

    @abstractmethod
    async def list(self) -> List[FeedbackEntry]:
        """Return every entry, newest timestamp first."""

    @abstractmethod
    async def delete(self, feedback_id: int) -> None:
        """Remove the entry with this id, if there is one."""

    async def close(self) -> None:
        """Release any held resources."""


class SQLAlchemyFeedbackStore(FeedbackStore):
    """Feedback store backed by a relational database."""

    def __init__(self, engine: AsyncEngine, timeout: float = 5.0):
        self.engine = engine
        self.timeout = timeout
        self._sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    async def _run(self, operation: str, func: Callable[[], Awaitable[T]]) -> T:
        try:
            return await asyncio.wait_for(func(), timeout=self.timeout)
        # TimeoutError is an OSError subclass on newer Pythons, so check it first
        except asyncio.TimeoutError as e:
            raise PersistenceError(f"{operation} timed out after {self.timeout}s") from e
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"{operation} failed: {e}") from e

    async def create_tables(self) -> None:
        """Create the feedbacks table if it does not exist."""
        async def _create() -> None:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        await self._run("create tables", _create)

    async def insert(self, fields: Mapping[str, Any]) -> FeedbackEntry:
        async def _insert() -> FeedbackEntry:
            async with self._sessionmaker() as session:
                entry = FeedbackEntry(**{key: fields[key] for key in FEEDBACK_FIELDS})
                session.add(entry)
                await session.commit()
                return entry

        entry = await self._run("insert", _insert)
        logger.debug(f"Inserted feedback {entry.id}")
        return entry

    async def list(self) -> List[FeedbackEntry]:
        async def _list() -> List[FeedbackEntry]:
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(FeedbackEntry).order_by(FeedbackEntry.timestamp.desc())
                )
                return list(result.scalars().all())

        # Text order is not time order across offsets and fractional seconds
        return newest_first(await self._run("list", _list))

    async def delete(self, feedback_id: int) -> None:
        async def _delete() -> int:
            async with self._sessionmaker() as session:
                result = await session.execute(
                    delete(FeedbackEntry).where(FeedbackEntry.id == feedback_id)
                )
                await session.commit()
                return result.rowcount

        removed = await self._run("delete", _delete)
        logger.debug(f"Delete feedback {feedback_id}: {removed} row(s) removed")

    async def close(self) -> None:
        await self.engine.dispose()


class InMemoryFeedbackStore(FeedbackStore):
    """Process-local feedback store."""

    def __init__(self):
        self._entries: List[FeedbackEntry] = []
        self._next_id = 1

    async def insert(self, fields: Mapping[str, Any]) -> FeedbackEntry:
        entry = FeedbackEntry(id=self._next_id, **{key: fields[key] for key in FEEDBACK_FIELDS})
        self._next_id += 1
        self._entries.append(entry)
        return entry

    async def list(self) -> List[FeedbackEntry]:
        return newest_first(self._entries)

    async def delete(self, feedback_id: int) -> None:
        self._entries = [e for e in self._entries if e.id != feedback_id]


def build_store(settings: Settings) -> FeedbackStore:
    """Create the store selected by ``settings.database_url``."""
    if settings.uses_memory_store:
        logger.info("Using in-memory feedback store")
        return InMemoryFeedbackStore()

    engine_kwargs: dict = {"echo": False, "pool_pre_ping": True}
    if not settings.database_url.startswith("sqlite"):
        engine_kwargs["pool_size"] = settings.pool_size
    logger.info(f"Using database store at {mask_database_url(settings.database_url)}")
    engine = create_async_engine(settings.database_url, **engine_kwargs)
    return SQLAlchemyFeedbackStore(engine, timeout=settings.store_timeout)
