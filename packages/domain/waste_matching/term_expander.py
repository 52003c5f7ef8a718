"""
Term Expander - Turn one AI label into catalog search terms

Vision labels are short and generic ("cardboard container", "soda can").
The catalog names objects the way a recycling center does ("box", "can"),
so each label is widened before searching:

1. The description itself (always first - the "primary term")
2. Its tokens longer than 2 characters (split on whitespace/hyphens)
3. Synonym-table injections keyed by substring

If none of those find anything, the caller asks for alternative terms, a
separate fuzzy lookup against ALTERNATIVE_TERMS.

Example:
- "Cardboard container" → ["cardboard container", "cardboard", "container",
  "box", "packaging", "carton"]
"""
import re
from typing import Iterable, List

import structlog
from rapidfuzz import fuzz

from packages.domain.waste_matching.lookup_tables import DEFAULT_TABLES, LookupTables
from packages.domain.waste_matching.schemas import CandidateLabel

logger = structlog.get_logger()

_TOKEN_SPLIT = re.compile(r"[\s\-]+")


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


def _dedupe(terms: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for term in terms:
        term = _normalize(term)
        if term and term not in seen:
            seen.add(term)
            result.append(term)
    return result


def tokenize(description: str) -> List[str]:
    """Split on whitespace and hyphens, keeping tokens longer than 2 characters."""
    return [token for token in _TOKEN_SPLIT.split(description.lower()) if len(token) > 2]


def expand(label: CandidateLabel, tables: LookupTables = DEFAULT_TABLES) -> List[str]:
    """
    Expand a label into ordered, deduplicated, lowercase search terms.

    Args:
        label: Candidate label from the vision collaborator
        tables: Lookup tables (synonym rules)

    Returns:
        Terms in insertion order; the first is always the description itself
    """
    description = _normalize(label.description)
    material = (label.material or "").lower()

    terms = [description]
    terms.extend(tokenize(description))

    for rule in tables.synonym_rules:
        if rule.material is not None and rule.material not in material:
            continue
        if any(trigger in description for trigger in rule.triggers):
            terms.extend(rule.terms)
            # Material-conditioned rules shadow their unconditioned twin
            if rule.material is not None:
                break

    expanded = _dedupe(terms)
    logger.debug("terms_expanded", description=description, terms=expanded)
    return expanded


def matching_alternative_keys(description: str, tables: LookupTables = DEFAULT_TABLES) -> List[str]:
    """
    Keys of the alternative-terms table that approximately occur in the description.

    A key matches when it is a plain substring, or when rapidfuzz's
    partial_ratio reaches the table's threshold (tolerates "soda-can",
    "mobilephone", small typos).
    """
    description = _normalize(description)
    matches = []
    for key in tables.alternative_terms:
        if key in description:
            matches.append(key)
        elif fuzz.partial_ratio(key, description) >= tables.alternative_match_threshold:
            matches.append(key)
    return matches


def expand_alternatives(label: CandidateLabel, tables: LookupTables = DEFAULT_TABLES) -> List[str]:
    """
    Fallback expansion used only when the regular terms found no catalog hits.

    Returns:
        [description, *alternative terms], or just [description] when no key matches
    """
    description = _normalize(label.description)
    terms = [description]
    for key in matching_alternative_keys(description, tables):
        terms.extend(tables.alternative_terms[key])

    expanded = _dedupe(terms)
    logger.debug("alternative_terms_expanded", description=description, terms=expanded)
    return expanded
