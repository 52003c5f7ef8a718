"""
Catalog Search - Run expanded terms against the catalog store

For every term (max 8 per label, min 3 characters) the name, synonyms and
variation columns are queried concurrently. Results are merged in term
order, then field order, so the outcome never depends on which query
finished first.

A term whose query fails or times out counts as zero hits for that term;
the rest of the search carries on.
"""
import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import structlog

from packages.domain.waste_matching.catalog_store import CatalogQueryError, CatalogStore
from packages.domain.waste_matching.decision_log import DecisionLog, DecisionStage
from packages.domain.waste_matching.schemas import CatalogEntry, CatalogField, SearchHit

logger = structlog.get_logger()

SEARCH_FIELDS = (CatalogField.NAME, CatalogField.SYNONYMS, CatalogField.VARIATION)
BROWSE_FIELDS = (CatalogField.NAME, CatalogField.SYNONYMS, CatalogField.VARIATION, CatalogField.MATERIAL)


@dataclass
class SearchOutcome:
    """Hits for one label plus bookkeeping about which terms failed"""
    hits: List[SearchHit] = field(default_factory=list)
    attempted_terms: List[str] = field(default_factory=list)
    failed_terms: List[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def all_failed(self) -> bool:
        """True when terms were attempted and every one of them failed"""
        return bool(self.attempted_terms) and len(self.failed_terms) == len(self.attempted_terms)

    @property
    def entries(self) -> List[CatalogEntry]:
        return [hit.entry for hit in self.hits]


class CatalogSearch:
    """
    Multi-field substring search with per-query timeouts.

    Usage:
        search = CatalogSearch(store)
        outcome = await search.search(["soda can", "soda"], log)
    """

    def __init__(
        self,
        store: CatalogStore,
        min_term_length: int = 3,
        max_terms: int = 8,
        per_term_limit: int = 40,
        query_timeout: float = 5.0,
    ):
        self.store = store
        self.min_term_length = min_term_length
        self.max_terms = max_terms
        self.per_term_limit = per_term_limit
        self.query_timeout = query_timeout

    async def search(
        self,
        terms: Sequence[str],
        log: DecisionLog,
        material_hint: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> SearchOutcome:
        """
        Search all usable terms concurrently and merge hits by entry id.

        Args:
            terms: Expanded search terms (primary term first)
            log: Decision log for this identification
            material_hint: Material hint from the label (recorded only)
            cancel_event: When set, no further queries are issued

        Returns:
            SearchOutcome with deduplicated hits in deterministic order
        """
        usable = [t for t in terms if len(t) >= self.min_term_length][:self.max_terms]
        skipped = [t for t in terms if len(t) < self.min_term_length]
        if skipped:
            log.record(DecisionStage.SEARCH, f"Skipped short terms: {', '.join(skipped)}", terms=skipped)

        outcome = SearchOutcome(attempted_terms=list(usable))
        if not usable:
            return outcome

        per_term = await asyncio.gather(
            *(self._search_term(term, log, cancel_event) for term in usable)
        )

        seen_ids = set()
        for term, (hits, failed) in zip(usable, per_term):
            if failed:
                outcome.failed_terms.append(term)
            for hit in hits:
                if hit.entry.id not in seen_ids:
                    seen_ids.add(hit.entry.id)
                    outcome.hits.append(hit)

        outcome.cancelled = bool(cancel_event and cancel_event.is_set())

        logger.info("catalog_search_complete",
                    terms=len(usable),
                    failed_terms=len(outcome.failed_terms),
                    hits=len(outcome.hits),
                    material_hint=material_hint)
        return outcome

    async def _search_term(
        self,
        term: str,
        log: DecisionLog,
        cancel_event: Optional[asyncio.Event],
    ) -> Tuple[List[SearchHit], bool]:
        """Query every search field for one term. Returns (hits, failed)."""
        if cancel_event is not None and cancel_event.is_set():
            log.record(DecisionStage.SEARCH, f"Search for '{term}' skipped: identification cancelled", term=term)
            return [], False

        results = await asyncio.gather(
            *(self._query(column, term) for column in SEARCH_FIELDS),
            return_exceptions=True,
        )
        for error in results:
            if isinstance(error, asyncio.TimeoutError):
                logger.warning("catalog_query_timeout", term=term, timeout=self.query_timeout)
                log.record(DecisionStage.SEARCH, f"Query for '{term}' timed out, treated as no hits", term=term)
                return [], True
            if isinstance(error, CatalogQueryError):
                logger.warning("catalog_term_failed", term=term, error=str(error))
                log.record(DecisionStage.SEARCH, f"Query for '{term}' failed, treated as no hits", term=term)
                return [], True
            if isinstance(error, BaseException):
                raise error

        hits = []
        seen_ids = set()
        for column, entries in zip(SEARCH_FIELDS, results):
            for entry in entries:
                if entry.id in seen_ids:
                    continue
                seen_ids.add(entry.id)
                hits.append(SearchHit(entry=entry, match_field=column, match_term=term))
        hits = hits[:self.per_term_limit]

        if hits:
            names = sorted({hit.entry.name for hit in hits})
            log.record(DecisionStage.SEARCH, f"Found {len(hits)} matches for '{term}': {', '.join(names)}",
                       term=term, hits=len(hits))
        else:
            log.record(DecisionStage.SEARCH, f"No matches for '{term}'", term=term)
        return hits, False

    async def _query(self, column: CatalogField, term: str) -> List[CatalogEntry]:
        try:
            return await asyncio.wait_for(
                self.store.query_by_field(column, term, self.per_term_limit),
                timeout=self.query_timeout,
            )
        except (asyncio.TimeoutError, CatalogQueryError):
            raise
        except Exception as e:
            # Stores other than SqlCatalogStore may raise anything
            raise CatalogQueryError(f"{column.value} query for {term!r} failed: {e}") from e

    async def browse(self, term: str, min_length: int = 2, limit: int = 10) -> List[CatalogEntry]:
        """
        Free-text catalog search for manual lookups (no AI involved).

        Queries name, synonyms, variation and material; merges by id.
        Failures are logged and produce an empty list.
        """
        term = " ".join(term.lower().split())
        if len(term) < min_length:
            return []

        results = await asyncio.gather(
            *(self._query(column, term) for column in BROWSE_FIELDS),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, (asyncio.TimeoutError, CatalogQueryError))]
        if errors:
            logger.error("catalog_browse_failed", term=term, error=str(errors[0]))
            return []
        for error in results:
            if isinstance(error, BaseException):
                raise error

        entries = []
        seen_ids = set()
        for batch in results:
            for entry in batch:
                if entry.id not in seen_ids:
                    seen_ids.add(entry.id)
                    entries.append(entry)

        logger.info("catalog_browse_complete", term=term, results=min(len(entries), limit))
        return entries[:limit]
