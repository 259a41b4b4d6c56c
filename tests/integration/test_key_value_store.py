import pytest

from app.infrastructure.db.repositories.key_value_repository import SqlKeyValueStore


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sql_store_roundtrip(db_session):
    store = SqlKeyValueStore(db_session)
    assert await store.get("portfolio") is None

    await store.set("portfolio", '{"holdings": []}')
    assert await store.get("portfolio") == '{"holdings": []}'

    await store.set("portfolio", '{"holdings": [1]}')
    assert await store.get("portfolio") == '{"holdings": [1]}'

    await store.delete("portfolio")
    assert await store.get("portfolio") is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sql_store_keys_are_independent(db_session):
    store = SqlKeyValueStore(db_session)
    await store.set("a", "1")
    await store.set("b", "2")
    await store.delete("a")
    assert await store.get("a") is None
    assert await store.get("b") == "2"
