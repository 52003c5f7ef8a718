"""
Waste Matching Module - Match AI vision labels to the waste-sorting catalog

Pipeline:
1. Term Expander: label → search terms (tokens, synonyms, alternatives)
2. Catalog Search: terms → catalog hits (concurrent, per-query timeout)
3. Variant Resolver: one variant per name (material/condition tie-breaks)
4. Candidate Scorer: confidence × match quality, rank labels
5. Categorization Resolver: winner → home/recycling categories
6. Decision Log: justification trail for every step

Example flow:
- "plastic bag" (0.92, soft plastic) → terms: plastic bag, plastic, bag
  → hits: Bag (soft plastic), Bag (hard plastic), Plastic bottle
  → variant: Bag (soft plastic) → score 0.92 × 1.2 = 1.104
  → Plastic / Recycling center - soft plastic (database-precise)
"""

from packages.domain.waste_matching.identification_service import WasteIdentificationService
from packages.domain.waste_matching.lookup_tables import DEFAULT_TABLES, LookupTables
from packages.domain.waste_matching.schemas import (
    NOT_FOUND_NAME,
    CandidateLabel,
    CatalogEntry,
    CategorizationResult,
    CategorizationSource,
    WasteIdentification,
)

__all__ = [
    'WasteIdentificationService',
    'LookupTables',
    'DEFAULT_TABLES',
    'NOT_FOUND_NAME',
    'CandidateLabel',
    'CatalogEntry',
    'CategorizationResult',
    'CategorizationSource',
    'WasteIdentification',
]
