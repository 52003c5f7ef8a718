#!/usr/bin/env python3
"""
Identify a waste item from a list of vision labels.

Runs the full matching pipeline and prints the result with its decision log.
Uses the database catalog by default; pass --csv to match against a CSV
export instead (no database needed).

Usage:
    python scripts/identify_labels.py <labels.json> [--csv <catalog.csv>]

Example:
    echo '[{"description": "plastic bag", "confidence": 0.92, "material": "soft plastic"}]' > labels.json
    python scripts/identify_labels.py labels.json --csv infra/db/seed/waste_catalog_sample.csv
"""
import asyncio
import json
import os
import sys

# Add parent directory to path so we can import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import structlog

from packages.common.config import get_settings
from packages.common.database import ensure_initialized, sessionmanager
from packages.domain.waste_matching.catalog_store import InMemoryCatalogStore, SqlCatalogStore
from packages.domain.waste_matching.identification_service import WasteIdentificationService

logger = structlog.get_logger()


async def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/identify_labels.py <labels.json> [--csv <catalog.csv>]")
        sys.exit(1)

    with open(sys.argv[1], encoding="utf-8") as f:
        labels = json.load(f)

    settings = get_settings()
    csv_path = sys.argv[sys.argv.index("--csv") + 1] if "--csv" in sys.argv else None

    if csv_path:
        store = InMemoryCatalogStore.from_csv(csv_path)
    else:
        await ensure_initialized()
        store = SqlCatalogStore(sessionmanager, table=settings.catalog_table)

    service = WasteIdentificationService(store, settings=settings)

    try:
        result = await service.identify(labels)
    finally:
        await sessionmanager.close()

    print("=" * 80)
    print(f"Name:        {result.name}")
    print(f"Home:        {result.home_category or '-'}")
    print(f"Recycling:   {result.recycling_category or '-'}")
    print(f"Source:      {result.categorization_source.value if result.categorization_source else '-'}")
    print(f"Confidence:  {result.confidence:.2%}")
    print(f"Description: {result.description}")
    print("=" * 80)
    print("Decision log:")
    for line in result.decision_log:
        print(f"  {line}")


if __name__ == "__main__":
    asyncio.run(main())
