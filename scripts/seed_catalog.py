#!/usr/bin/env python3
"""
Load a waste catalog CSV export into the waste_catalog table.

Existing rows with the same id are updated. Run the migrations first
(alembic upgrade head).

Usage:
    DATABASE_URL=postgresql://... python scripts/seed_catalog.py <catalog.csv>

Example:
    python scripts/seed_catalog.py infra/db/seed/waste_catalog_sample.csv
"""
import asyncio
import os
import sys

# Add parent directory to path so we can import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import structlog
from sqlalchemy import text

from packages.common.config import get_settings
from packages.common.database import ensure_initialized, sessionmanager
from packages.domain.waste_matching.catalog_store import InMemoryCatalogStore

logger = structlog.get_logger()


async def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/seed_catalog.py <catalog.csv>")
        sys.exit(1)

    settings = get_settings()
    entries = InMemoryCatalogStore.from_csv(sys.argv[1]).entries

    await ensure_initialized()
    upsert = text(f"""
        INSERT INTO {settings.catalog_table}
            (id, name, synonyms, variation, material, condition, home_category, recycling_category)
        VALUES
            (:id, :name, :synonyms, :variation, :material, :condition, :home_category, :recycling_category)
        ON CONFLICT (id) DO UPDATE SET
            name = EXCLUDED.name,
            synonyms = EXCLUDED.synonyms,
            variation = EXCLUDED.variation,
            material = EXCLUDED.material,
            condition = EXCLUDED.condition,
            home_category = EXCLUDED.home_category,
            recycling_category = EXCLUDED.recycling_category
    """)

    try:
        async with sessionmanager.session(readonly=False) as db:
            for entry in entries:
                await db.execute(upsert, entry.model_dump())
            await db.commit()
    finally:
        await sessionmanager.close()

    logger.info("catalog_seeded", table=settings.catalog_table, entries=len(entries))
    print(f"Loaded {len(entries)} catalog entries into {settings.catalog_table}")


if __name__ == "__main__":
    asyncio.run(main())
