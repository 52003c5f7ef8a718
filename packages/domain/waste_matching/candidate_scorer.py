"""
Candidate Scorer - Make labels comparable

Each label's resolved entries are ranked with ENTRY_RULES; the top entry is
that label's best match. Its match quality then scales the label's AI
confidence:

    combined_score = label.confidence × db_match_quality

db_match_quality starts at 1.0 and is adjusted multiplicatively:
- ×2.0 exact name match with the primary term
- ×1.2 well-sorted home category (Metal, Plastic, Paper, ...)
- ×0.5 "Residual" home category
- ×0.7 entry name is a generic foil/wrap material

The label with the highest combined score wins.
"""
from typing import List, Optional, Sequence, Tuple

import structlog

from packages.domain.waste_matching.lookup_tables import DEFAULT_TABLES, LookupTables
from packages.domain.waste_matching.schemas import CandidateLabel, CatalogEntry, ScoredCandidate
from packages.domain.waste_matching.scoring_rules import ENTRY_RULES, ScoringContext, is_residual, rank

logger = structlog.get_logger()


def rank_entries(
    entries: Sequence[CatalogEntry],
    primary_term: str,
    material_hint: Optional[str] = None,
    tables: LookupTables = DEFAULT_TABLES,
) -> List[Tuple[CatalogEntry, float]]:
    """Rank one label's resolved entries, best first (stable on ties)."""
    ctx = ScoringContext(primary_term=primary_term.strip().lower(), material_hint=material_hint, tables=tables)
    return rank(entries, ENTRY_RULES, ctx)


def db_match_quality(entry: CatalogEntry, primary_term: str, tables: LookupTables = DEFAULT_TABLES) -> float:
    """How much to trust a label given its best catalog entry."""
    name = entry.name.strip().lower()
    quality = 1.0

    if name == primary_term.strip().lower():
        quality = 2.0

    home = entry.home_category.strip().lower()
    if home in (category.lower() for category in tables.well_sorted_categories):
        quality *= 1.2

    if is_residual(entry, tables):
        quality *= 0.5

    if any(generic in name for generic in tables.generic_material_names):
        quality *= 0.7

    return quality


def score_label(
    label: CandidateLabel,
    entries: Sequence[CatalogEntry],
    primary_term: str,
    label_index: int = 0,
    tables: LookupTables = DEFAULT_TABLES,
) -> Optional[ScoredCandidate]:
    """
    Pick the label's best entry and compute its combined score.

    Returns:
        ScoredCandidate, or None if the label has no entries
    """
    if not entries:
        return None

    best, entry_score = rank_entries(entries, primary_term, label.material, tables)[0]
    quality = db_match_quality(best, primary_term, tables)
    combined = label.confidence * quality

    logger.debug("label_scored",
                 label=label.description,
                 best_entry=best.name,
                 entry_score=entry_score,
                 db_match_quality=quality,
                 combined_score=combined)

    return ScoredCandidate(
        label=label,
        entry=best,
        combined_score=combined,
        db_match_quality=quality,
        label_index=label_index,
    )


def rank_candidates(candidates: Sequence[ScoredCandidate]) -> List[ScoredCandidate]:
    """Highest combined score first; ties go to the earlier label."""
    return sorted(candidates, key=lambda c: (-c.combined_score, c.label_index))
