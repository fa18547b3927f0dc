"""Tests for the feedback store implementations."""

import asyncio

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from feedbox.config import Settings
from feedbox.errors import PersistenceError
from feedbox.models import parse_timestamp
from feedbox.store import InMemoryFeedbackStore, SQLAlchemyFeedbackStore, build_store


def entry_fields(**overrides) -> dict:
    fields = {
        "name": "Ana",
        "relationship": "Colleague",
        "mood": "🤔",
        "message": "Nice work",
        "rating": 4,
        "timestamp": "2024-01-01T00:00:00Z",
    }
    fields.update(overrides)
    return fields


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def store(request, test_db_url):
    if request.param == "memory":
        yield InMemoryFeedbackStore()
        return
    sql_store = SQLAlchemyFeedbackStore(create_async_engine(test_db_url))
    await sql_store.create_tables()
    yield sql_store
    await sql_store.close()


@pytest.mark.asyncio
async def test_insert_assigns_increasing_ids(store):
    first = await store.insert(entry_fields())
    second = await store.insert(entry_fields(name="Bo"))
    assert first.id == 1
    assert second.id > first.id
    assert second.name == "Bo"


@pytest.mark.asyncio
async def test_insert_keeps_fields_verbatim(store):
    fields = entry_fields(timestamp="2024-03-05T10:20:30.123+02:00", mood="😍")
    entry = await store.insert(fields)
    for key, value in fields.items():
        assert getattr(entry, key) == value


@pytest.mark.asyncio
async def test_list_newest_first(store):
    await store.insert(entry_fields(name="a", timestamp="2024-01-01T00:00:00Z"))
    await store.insert(entry_fields(name="c", timestamp="2024-03-01T00:00:00Z"))
    await store.insert(entry_fields(name="b", timestamp="2024-02-01T00:00:00Z"))
    assert [e.name for e in await store.list()] == ["c", "b", "a"]


@pytest.mark.asyncio
async def test_list_orders_mixed_offsets_and_fractions(store):
    await store.insert(entry_fields(name="05:00Z", timestamp="2024-01-01T10:00:00+05:00"))
    await store.insert(entry_fields(name="06:00Z", timestamp="2024-01-01T06:00:00Z"))
    await store.insert(entry_fields(name="06:00:00.5Z", timestamp="2024-01-01T06:00:00.500Z"))
    await store.insert(entry_fields(name="04:00Z naive", timestamp="2024-01-01T04:00:00"))
    assert [e.name for e in await store.list()] == ["06:00:00.5Z", "06:00Z", "05:00Z", "04:00Z naive"]


@pytest.mark.asyncio
async def test_list_puts_unparseable_timestamps_last(store):
    await store.insert(entry_fields(name="legacy", timestamp="last tuesday"))
    await store.insert(entry_fields(name="dated", timestamp="2020-01-01T00:00:00Z"))
    assert [e.name for e in await store.list()] == ["dated", "legacy"]


@pytest.mark.asyncio
async def test_delete_is_idempotent(store):
    entry = await store.insert(entry_fields())
    await store.delete(entry.id)
    await store.delete(entry.id)
    await store.delete(12345)
    assert await store.list() == []


@pytest.mark.asyncio
async def test_id_not_reused(store):
    entry = await store.insert(entry_fields())
    await store.delete(entry.id)
    again = await store.insert(entry_fields())
    assert again.id == entry.id + 1


@pytest.mark.asyncio
async def test_missing_table_raises_persistence_error(test_db_url):
    sql_store = SQLAlchemyFeedbackStore(create_async_engine(test_db_url))
    try:
        with pytest.raises(PersistenceError):
            await sql_store.list()
    finally:
        await sql_store.close()


@pytest.mark.asyncio
async def test_timeout_raises_persistence_error(test_db_url):
    sql_store = SQLAlchemyFeedbackStore(create_async_engine(test_db_url), timeout=0.01)

    async def slow():
        await asyncio.sleep(1)

    try:
        with pytest.raises(PersistenceError, match="timed out"):
            await sql_store._run("insert", slow)
    finally:
        await sql_store.close()


def test_build_store_selects_backend(test_db_url):
    assert isinstance(build_store(Settings(database_url="memory://")), InMemoryFeedbackStore)
    assert isinstance(build_store(Settings(database_url=test_db_url)), SQLAlchemyFeedbackStore)


def test_parse_timestamp_normalizes_to_utc():
    assert parse_timestamp("2024-01-01T10:00:00+05:00") == parse_timestamp("2024-01-01T05:00:00Z")
    assert parse_timestamp("2024-01-01T05:00:00") == parse_timestamp("2024-01-01T05:00:00.000Z")
    with pytest.raises(ValueError):
        parse_timestamp("yesterday")
