"""
Catalog Store - Read-only access to the waste-sorting reference catalog

The matching engine only ever needs one capability from the catalog:
"give me rows whose <field> contains <substring>". Two implementations:

- SqlCatalogStore: async SQLAlchemy against the waste_catalog table
- InMemoryCatalogStore: a list of entries (tests, offline scripts, CSV exports)
"""
import csv
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Union

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from packages.common.database import DatabaseSessionManager, sessionmanager
from packages.domain.waste_matching.schemas import CatalogEntry, CatalogField

logger = structlog.get_logger()


class CatalogQueryError(Exception):
    """Raised when a single catalog query fails"""
    pass


class CatalogStore(Protocol):
    """
    Protocol for catalog stores.

    Implementations must match case-insensitively and return at most
    `limit` rows in a stable order.
    """

    async def query_by_field(self, field: CatalogField, substring: str, limit: int) -> List[CatalogEntry]:
        """
        Return entries whose `field` contains `substring`.

        Raises:
            CatalogQueryError: If the store cannot answer the query
        """
        ...


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlCatalogStore:
    """
    Catalog store backed by the waste_catalog table.

    Opens one session per query; the engine runs queries concurrently and
    sessions must not be shared between tasks.
    """

    # Column names are interpolated into SQL, so only these are allowed
    COLUMNS = {
        CatalogField.NAME: "name",
        CatalogField.SYNONYMS: "synonyms",
        CatalogField.VARIATION: "variation",
        CatalogField.MATERIAL: "material",
    }

    def __init__(self, manager: Optional[DatabaseSessionManager] = None, table: str = "waste_catalog"):
        self.manager = manager or sessionmanager
        self.table = table

    async def query_by_field(self, field: CatalogField, substring: str, limit: int) -> List[CatalogEntry]:
        column = self.COLUMNS[CatalogField(field)]
        query = text(f"""
            SELECT
                id,
                name,
                synonyms,
                variation,
                material,
                condition,
                home_category,
                recycling_category
            FROM {self.table}
            WHERE lower({column}) LIKE :pattern ESCAPE '\\'
            ORDER BY id
            LIMIT :limit
        """)
        pattern = f"%{_escape_like(substring.lower())}%"

        try:
            async with self.manager.session() as db:
                result = await db.execute(query, {"pattern": pattern, "limit": limit})
                rows = result.fetchall()
        except SQLAlchemyError as e:
            logger.error("catalog_query_failed",
                         field=column,
                         term=substring,
                         error=str(e))
            raise CatalogQueryError(f"Query on {column} for {substring!r} failed: {e}") from e

        return [CatalogEntry(**dict(row._mapping)) for row in rows]


class InMemoryCatalogStore:
    """Catalog store over an in-memory list of entries, preserving list order."""

    def __init__(self, entries: Iterable[CatalogEntry]):
        self.entries: List[CatalogEntry] = list(entries)

    async def query_by_field(self, field: CatalogField, substring: str, limit: int) -> List[CatalogEntry]:
        field = CatalogField(field)
        needle = substring.lower()
        results = []
        for entry in self.entries:
            value = entry.field_value(field)
            if value and needle in value.lower():
                results.append(entry)
                if len(results) >= limit:
                    break
        return results

    @classmethod
    def from_csv(cls, path: Union[str, Path]) -> "InMemoryCatalogStore":
        """
        Load a catalog export.

        Expected header: id,name,synonyms,variation,material,condition,
        home_category,recycling_category. Empty cells become None.
        """
        entries = []
        with open(path, newline="", encoding="utf-8") as f:
            for row in csv.DictReader(f):
                cleaned = {key: (value.strip() or None) if isinstance(value, str) else value
                           for key, value in row.items() if key}
                entries.append(CatalogEntry(**cleaned))

        logger.info("catalog_loaded", path=str(path), entries=len(entries))
        return cls(entries)
