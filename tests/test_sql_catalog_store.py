import asyncio

import pytest
from sqlalchemy import text
from sqlalchemy.pool import StaticPool

from packages.common.database import DatabaseSessionManager
from packages.domain.waste_matching.catalog_search import CatalogSearch
from packages.domain.waste_matching.catalog_store import CatalogQueryError, SqlCatalogStore
from packages.domain.waste_matching.decision_log import DecisionLog
from packages.domain.waste_matching.schemas import CatalogField
from tests.stubs import make_entries

CREATE_TABLE = """
    CREATE TABLE waste_catalog (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        synonyms TEXT,
        variation TEXT,
        material TEXT,
        condition TEXT,
        home_category TEXT NOT NULL DEFAULT '',
        recycling_category TEXT NOT NULL DEFAULT ''
    )
"""

INSERT_ENTRY = """
    INSERT INTO waste_catalog
        (id, name, synonyms, variation, material, condition, home_category, recycling_category)
    VALUES
        (:id, :name, :synonyms, :variation, :material, :condition, :home_category, :recycling_category)
"""


async def _with_catalog(check):
    manager = DatabaseSessionManager()
    await manager.init(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    try:
        async with manager.session(readonly=False) as db:
            await db.execute(text(CREATE_TABLE))
            for entry in make_entries():
                await db.execute(text(INSERT_ENTRY), entry.model_dump())
            await db.commit()
        return await check(manager)
    finally:
        await manager.close()


def test_query_by_field_is_case_insensitive_and_ordered():
    async def check(manager):
        return await SqlCatalogStore(manager).query_by_field(CatalogField.NAME, "BAG", limit=40)

    results = asyncio.run(_with_catalog(check))
    assert [entry.id for entry in results] == ["1", "2", "3"]
    assert results[0].material == "Soft plastic"


def test_query_respects_limit():
    async def check(manager):
        return await SqlCatalogStore(manager).query_by_field(CatalogField.NAME, "bag", limit=2)

    assert len(asyncio.run(_with_catalog(check))) == 2


def test_like_wildcards_are_literal():
    async def check(manager):
        store = SqlCatalogStore(manager)
        percent = await store.query_by_field(CatalogField.NAME, "%", limit=40)
        underscore = await store.query_by_field(CatalogField.NAME, "b_g", limit=40)
        return percent, underscore

    percent, underscore = asyncio.run(_with_catalog(check))
    assert percent == []
    assert underscore == []


def test_material_field_is_queryable():
    async def check(manager):
        return await SqlCatalogStore(manager).query_by_field(CatalogField.MATERIAL, "alumin", limit=40)

    assert [entry.name for entry in asyncio.run(_with_catalog(check))] == ["Can"]


def test_missing_table_raises_query_error():
    async def check(manager):
        with pytest.raises(CatalogQueryError):
            await SqlCatalogStore(manager, table="missing_catalog").query_by_field(CatalogField.NAME, "bag", 10)
        return True

    assert asyncio.run(_with_catalog(check))


def test_concurrent_search_over_sql_store():
    async def check(manager):
        search = CatalogSearch(SqlCatalogStore(manager))
        return await search.search(["bag", "soda can", "tissue"], DecisionLog())

    outcome = asyncio.run(_with_catalog(check))
    assert [hit.entry.id for hit in outcome.hits] == ["1", "2", "3", "4", "9"]
    assert outcome.failed_terms == []
