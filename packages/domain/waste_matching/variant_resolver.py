"""
Variant Resolver - One catalog entry per distinct name

The catalog often holds several rows for the same object ("Bag" as soft
plastic, "Bag" as hard plastic, "Bag" as paper). Hits are grouped by
lowercased name and the best variant of each group is kept, scored with
VARIANT_RULES against the label's material hint.

Example:
- hint="soft plastic", variants: Bag/soft plastic (+200 +400 +100),
  Bag/hard plastic (+100) → Bag/soft plastic
"""
from typing import Dict, List, Optional, Sequence

import structlog

from packages.domain.waste_matching.decision_log import DecisionLog, DecisionStage
from packages.domain.waste_matching.lookup_tables import DEFAULT_TABLES, LookupTables
from packages.domain.waste_matching.schemas import CatalogEntry
from packages.domain.waste_matching.scoring_rules import VARIANT_RULES, ScoringContext, rank

logger = structlog.get_logger()


def _describe(entry: CatalogEntry) -> str:
    details = [d for d in (entry.material, entry.condition) if d]
    return f"{entry.name} ({', '.join(details)})" if details else entry.name


def resolve(
    entries: Sequence[CatalogEntry],
    material_hint: Optional[str] = None,
    log: Optional[DecisionLog] = None,
    tables: LookupTables = DEFAULT_TABLES,
) -> List[CatalogEntry]:
    """
    Keep the best-scoring variant per name.

    Args:
        entries: Deduplicated search hits, in hit order
        material_hint: Material hint from the label
        log: Decision log (optional)
        tables: Lookup tables (markers, residual category)

    Returns:
        One entry per distinct name, groups in order of first appearance
    """
    groups: Dict[str, List[CatalogEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.name.strip().lower(), []).append(entry)

    ctx = ScoringContext(material_hint=material_hint, tables=tables)
    resolved = []
    for name, variants in groups.items():
        if len(variants) == 1:
            resolved.append(variants[0])
            continue

        ranked = rank(variants, VARIANT_RULES, ctx)
        chosen, score = ranked[0]
        resolved.append(chosen)

        logger.debug("variant_chosen",
                     name=name,
                     variants=len(variants),
                     chosen_id=chosen.id,
                     score=score)
        if log is not None:
            log.record(
                DecisionStage.VARIANTS,
                f"Chose {_describe(chosen)} among {len(variants)} variants of '{chosen.name}' "
                f"(material hint: {material_hint or 'none'})",
                name=name,
                chosen_id=chosen.id,
                variant_score=score,
            )

    return resolved
