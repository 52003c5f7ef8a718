"""
Identification Service - Orchestrates label matching end to end

Flow per identification:
1. Term Expander: each label (max 8) → search terms
2. Catalog Search: terms → hits (alternative terms if nothing found)
3. Variant Resolver: hits → one entry per name
4. Candidate Scorer: best entry per label, combined score, rank labels
5. Categorization Resolver: winner → home/recycling categories
Every step writes to the Decision Log, which becomes the result's
justification trail.

All labels are searched concurrently; scores are only compared after every
label has finished (asyncio.gather is the barrier).

identify() never raises: empty input, no matches, catalog outages,
timeouts and cancellation all produce the not-found sentinel.

Example:
- Labels: [("plastic bag", 0.92, "soft plastic"), ("shopping", 0.71)]
- "plastic bag" → Bag (soft plastic variant) → quality 1.2 → score 1.104
- Result: Bag / Plastic / Recycling center - soft plastic (database-precise)
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import structlog
from pydantic import ValidationError

from packages.common.config import Settings, get_settings
from packages.domain.waste_matching import term_expander
from packages.domain.waste_matching.candidate_scorer import rank_candidates, score_label
from packages.domain.waste_matching.catalog_search import CatalogSearch, SearchOutcome
from packages.domain.waste_matching.catalog_store import CatalogStore
from packages.domain.waste_matching.categorization_resolver import CategorizationResolver
from packages.domain.waste_matching.decision_log import DecisionLog, DecisionStage
from packages.domain.waste_matching.lookup_tables import DEFAULT_TABLES, LookupTables
from packages.domain.waste_matching.recent_results import RecentResults
from packages.domain.waste_matching.schemas import (
    CandidateLabel,
    CatalogEntry,
    ScoredCandidate,
    WasteIdentification,
    not_found,
)
from packages.domain.waste_matching.variant_resolver import resolve

logger = structlog.get_logger()

LabelInput = Union[CandidateLabel, Dict[str, Any]]


@dataclass
class LabelOutcome:
    """What happened to one label"""
    candidate: Optional[ScoredCandidate]
    search_failed: bool


class WasteIdentificationService:
    """
    Identifies a waste item from AI labels against the reference catalog.

    Usage:
        service = WasteIdentificationService(store)
        result = await service.identify([
            CandidateLabel(description="soda can", confidence=0.93, material="aluminium"),
        ])
        print(f"{result.name}: {result.home_category} / {result.recycling_category}")
    """

    def __init__(
        self,
        store: CatalogStore,
        tables: LookupTables = DEFAULT_TABLES,
        settings: Optional[Settings] = None,
        recent: Optional[RecentResults] = None,
    ):
        """Initialize with catalog store, lookup tables and limits from settings."""
        self.settings = settings or get_settings()
        self.tables = tables
        self.search = CatalogSearch(
            store,
            min_term_length=self.settings.min_term_length,
            max_terms=self.settings.max_terms_per_label,
            per_term_limit=self.settings.per_term_result_limit,
            query_timeout=self.settings.query_timeout_seconds,
        )
        self.resolver = CategorizationResolver(tables)
        self.recent = recent if recent is not None else RecentResults(self.settings.recent_results_limit)

    async def identify(
        self,
        labels: Iterable[LabelInput],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> WasteIdentification:
        """
        Identify the item described by the labels.

        Args:
            labels: Candidate labels in priority order (dicts are accepted)
            cancel_event: Set it to stop issuing further catalog queries

        Returns:
            WasteIdentification, or the not-found sentinel
        """
        log = DecisionLog()
        candidates = self._prepare_labels(labels, log)

        if not candidates:
            log.record(DecisionStage.INPUT, "No usable labels received, nothing to identify")
            result = not_found(log.render())
        else:
            result = await self._identify_with_timeout(candidates, log, cancel_event)

        self.recent.add(result)
        logger.info("identification_complete",
                    name=result.name,
                    home_category=result.home_category,
                    recycling_category=result.recycling_category,
                    source=result.categorization_source.value if result.categorization_source else None,
                    confidence=result.confidence,
                    decisions=len(result.decision_log))
        return result

    def identify_blocking(self, labels: Iterable[LabelInput]) -> WasteIdentification:
        """Synchronous wrapper for callers without an event loop."""
        return asyncio.run(self.identify(labels))

    async def browse(self, term: str) -> List[CatalogEntry]:
        """Manual catalog search (user typed a name instead of taking a photo)."""
        return await self.search.browse(
            term,
            min_length=self.settings.browse_min_term_length,
            limit=self.settings.browse_result_limit,
        )

    def identification_from_entry(self, entry: CatalogEntry) -> WasteIdentification:
        """Turn a manually chosen catalog entry into a result."""
        log = DecisionLog()
        log.record(DecisionStage.SELECTION, f"Selected '{entry.name}' manually from the catalog", entry_id=entry.id)
        categorization = self.resolver.categorize(
            db_material=entry.material,
            db_home=entry.home_category,
            db_recycling=entry.recycling_category,
            ai_material=None,
            ai_description=entry.name,
        )
        log.record(DecisionStage.CATEGORIZATION,
                   f"Categorized as {categorization.home_category} / {categorization.recycling_category} "
                   f"(source: {categorization.source.value})",
                   source=categorization.source.value)
        result = WasteIdentification(
            name=entry.name,
            home_category=categorization.home_category,
            recycling_category=categorization.recycling_category,
            description=self._describe(entry, "Found in the waste catalog."),
            confidence=1.0,
            decision_log=log.render(),
            categorization_source=categorization.source,
        )
        self.recent.add(result)
        return result

    def _prepare_labels(self, labels: Iterable[LabelInput], log: DecisionLog) -> List[CandidateLabel]:
        """Validate, drop empty descriptions, keep the first max_labels."""
        prepared = []
        received = 0
        for raw in labels or []:
            received += 1
            try:
                label = raw if isinstance(raw, CandidateLabel) else CandidateLabel.from_vision(raw)
            except (ValidationError, AttributeError, TypeError) as e:
                logger.warning("invalid_label_dropped", label=repr(raw)[:200], error=str(e))
                continue
            if not label.description:
                logger.warning("label_without_description_dropped", confidence=label.confidence)
                continue
            prepared.append(label)

        kept = prepared[:self.settings.max_labels]
        if received:
            log.record(DecisionStage.INPUT, f"Received {received} labels, processing {len(kept)}",
                       received=received, processed=len(kept))
        return kept

    async def _identify_with_timeout(
        self,
        labels: List[CandidateLabel],
        log: DecisionLog,
        cancel_event: Optional[asyncio.Event],
    ) -> WasteIdentification:
        try:
            return await asyncio.wait_for(
                self._run(labels, log, cancel_event),
                timeout=self.settings.identification_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("identification_timeout", timeout=self.settings.identification_timeout_seconds)
            log.record(DecisionStage.SELECTION,
                       f"Identification timed out after {self.settings.identification_timeout_seconds}s")
            return not_found(log.render())
        except Exception as e:
            logger.error("identification_failed", error=str(e), exc_info=True)
            log.record(DecisionStage.SELECTION, f"Identification failed unexpectedly: {e}")
            return not_found(log.render())

    async def _run(
        self,
        labels: List[CandidateLabel],
        log: DecisionLog,
        cancel_event: Optional[asyncio.Event],
    ) -> WasteIdentification:
        # Barrier: every label finishes before any scores are compared
        outcomes = await asyncio.gather(
            *(self._evaluate_label(index, label, log, cancel_event) for index, label in enumerate(labels))
        )

        if cancel_event is not None and cancel_event.is_set():
            log.record(DecisionStage.SELECTION, "Identification cancelled, returning no result")
            return not_found(log.render())

        if outcomes and all(outcome.search_failed for outcome in outcomes):
            logger.error("catalog_unavailable", labels=len(outcomes))
            log.record(DecisionStage.SELECTION, "Catalog unavailable: every search failed")
            return not_found(log.render())

        candidates = [outcome.candidate for outcome in outcomes if outcome.candidate is not None]
        if not candidates:
            log.record(DecisionStage.SELECTION, "No label matched any catalog entry")
            return not_found(log.render())

        ranked = rank_candidates(candidates)
        for position, candidate in enumerate(ranked, 1):
            log.record(DecisionStage.SCORING,
                       f"{position}. '{candidate.label.description}' -> '{candidate.entry.name}' "
                       f"({candidate.entry.home_category or 'no category'}), score {candidate.combined_score:.3f}",
                       label=candidate.label.description,
                       combined_score=candidate.combined_score)

        winner = ranked[0]
        log.record(DecisionStage.SELECTION,
                   f"Winner: '{winner.label.description}' -> '{winner.entry.name}' "
                   f"(score {winner.combined_score:.3f})",
                   entry_id=winner.entry.id)

        return self._build_result(winner, log)

    async def _evaluate_label(
        self,
        index: int,
        label: CandidateLabel,
        log: DecisionLog,
        cancel_event: Optional[asyncio.Event],
    ) -> LabelOutcome:
        """Expand, search, resolve variants and score one label."""
        log.record(DecisionStage.EXPANSION,
                   f"Processing label {index + 1}: '{label.description}' "
                   f"(confidence {label.confidence:.2f}, material {label.material or 'unknown'})",
                   label_index=index)

        terms = term_expander.expand(label, self.tables)
        log.record(DecisionStage.EXPANSION, f"Search terms: {', '.join(terms)}", terms=terms)

        outcome = await self.search.search(terms, log, label.material, cancel_event)
        search_failed = outcome.all_failed

        if not outcome.hits and not outcome.cancelled:
            outcome, search_failed = await self._search_alternatives(label, terms, log, cancel_event, outcome)

        if not outcome.hits:
            log.record(DecisionStage.SEARCH, f"No catalog entries found for '{label.description}'")
            return LabelOutcome(candidate=None, search_failed=search_failed)

        entries = resolve(outcome.entries, label.material, log, self.tables)
        candidate = score_label(label, entries, terms[0], index, self.tables)

        log.record(DecisionStage.SCORING,
                   f"'{label.description}': best match '{candidate.entry.name}', "
                   f"match quality {candidate.db_match_quality:.2f}, combined score {candidate.combined_score:.3f}",
                   label_index=index,
                   db_match_quality=candidate.db_match_quality)
        return LabelOutcome(candidate=candidate, search_failed=False)

    async def _search_alternatives(
        self,
        label: CandidateLabel,
        tried: List[str],
        log: DecisionLog,
        cancel_event: Optional[asyncio.Event],
        previous: SearchOutcome,
    ) -> Tuple[SearchOutcome, bool]:
        alternatives = [t for t in term_expander.expand_alternatives(label, self.tables) if t not in tried]
        if not alternatives:
            return previous, previous.all_failed

        log.record(DecisionStage.EXPANSION, f"Trying alternative terms: {', '.join(alternatives)}",
                   terms=alternatives)
        outcome = await self.search.search(alternatives, log, label.material, cancel_event)
        # Only an outage if both rounds failed outright
        return outcome, previous.all_failed and outcome.all_failed

    def _build_result(self, winner: ScoredCandidate, log: DecisionLog) -> WasteIdentification:
        entry = winner.entry
        categorization = self.resolver.categorize(
            db_material=entry.material,
            db_home=entry.home_category,
            db_recycling=entry.recycling_category,
            ai_material=winner.label.material,
            ai_description=winner.label.description,
        )
        log.record(DecisionStage.CATEGORIZATION,
                   f"Categorized as {categorization.home_category} / {categorization.recycling_category} "
                   f"(source: {categorization.source.value})",
                   source=categorization.source.value)

        return WasteIdentification(
            name=entry.name,
            home_category=categorization.home_category,
            recycling_category=categorization.recycling_category,
            description=self._describe(entry, "Identified using AI analysis."),
            confidence=winner.label.confidence,
            decision_log=log.render(),
            categorization_source=categorization.source,
            matched_label=winner.label.description,
        )

    @staticmethod
    def _describe(entry: CatalogEntry, lead: str) -> str:
        parts = [lead]
        if entry.variation:
            parts.append(f"Variation: {entry.variation}.")
        if entry.condition:
            parts.append(f"Condition: {entry.condition}.")
        parts.append("Sort as indicated or contact your local recycling center for specific guidance.")
        return " ".join(parts)
