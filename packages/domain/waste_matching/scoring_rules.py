"""
Scoring Rules - Named, additive scoring rules for catalog entries

Each rule looks at one entry and returns a delta. Rules run in the order
listed and the deltas are summed, so every bonus is auditable on its own.

Two pipelines share these rules:
- VARIANT_RULES pick one variant among entries sharing a name
- ENTRY_RULES rank the resolved entries of one label

Precedence (ENTRY_RULES):
1. Material hint alignment: +600 exact, +400 partial
2. Exact name == primary term: +1000
3. Name contains primary term: +300, synonyms contain it: +300
4. Clean/dry condition: +200
5. Sorted home category: +150, "Residual": -200
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from packages.domain.waste_matching.lookup_tables import DEFAULT_TABLES, LookupTables
from packages.domain.waste_matching.schemas import CatalogEntry


@dataclass(frozen=True)
class ScoringContext:
    primary_term: str = ""
    material_hint: Optional[str] = None
    tables: LookupTables = DEFAULT_TABLES


@dataclass(frozen=True)
class ScoringRule:
    name: str
    score: Callable[[CatalogEntry, ScoringContext], float]


def _lower(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def material_alignment(entry_material: Optional[str], material_hint: Optional[str]) -> Optional[str]:
    """'exact', 'partial' (either contains the other) or None."""
    entry_material = _lower(entry_material)
    hint = _lower(material_hint)
    if not entry_material or not hint:
        return None
    if entry_material == hint:
        return "exact"
    if hint in entry_material or entry_material in hint:
        return "partial"
    return None


def has_marker(value: Optional[str], markers: Sequence[str]) -> bool:
    value = _lower(value)
    return any(marker in value for marker in markers)


def is_residual(entry: CatalogEntry, tables: LookupTables) -> bool:
    return _lower(entry.home_category) == tables.residual_home.lower()


# === VARIANT RULES ===

def variant_material_bonus(entry: CatalogEntry, ctx: ScoringContext) -> float:
    alignment = material_alignment(entry.material, ctx.material_hint)
    if alignment == "exact":
        return 200
    if alignment == "partial":
        return 100
    return 0


def plastic_subtype_bonus(entry: CatalogEntry, ctx: ScoringContext) -> float:
    """Soft/hard plastic agreement outranks the generic material bonus."""
    if not ctx.material_hint or not entry.material:
        return 0
    bonus = 0
    tables = ctx.tables
    if has_marker(ctx.material_hint, tables.soft_plastic_markers) and \
            has_marker(entry.material, tables.soft_plastic_markers):
        bonus += 400
    if has_marker(ctx.material_hint, tables.hard_plastic_markers) and \
            has_marker(entry.material, tables.hard_plastic_markers):
        bonus += 400
    return bonus


def variant_condition_bonus(entry: CatalogEntry, ctx: ScoringContext) -> float:
    return 200 if has_marker(entry.condition, ctx.tables.clean_condition_markers) else 0


def variant_category_bonus(entry: CatalogEntry, ctx: ScoringContext) -> float:
    return 0 if is_residual(entry, ctx.tables) else 100


VARIANT_RULES: Tuple[ScoringRule, ...] = (
    ScoringRule("material_alignment", variant_material_bonus),
    ScoringRule("plastic_subtype", plastic_subtype_bonus),
    ScoringRule("clean_condition", variant_condition_bonus),
    ScoringRule("sorted_category", variant_category_bonus),
)


# === ENTRY RULES ===

def entry_material_bonus(entry: CatalogEntry, ctx: ScoringContext) -> float:
    alignment = material_alignment(entry.material, ctx.material_hint)
    if alignment == "exact":
        return 600
    if alignment == "partial":
        return 400
    return 0


def exact_name_bonus(entry: CatalogEntry, ctx: ScoringContext) -> float:
    return 1000 if ctx.primary_term and _lower(entry.name) == ctx.primary_term else 0


def contains_term_bonus(entry: CatalogEntry, ctx: ScoringContext) -> float:
    if not ctx.primary_term:
        return 0
    bonus = 0
    if ctx.primary_term in _lower(entry.name):
        bonus += 300
    if ctx.primary_term in _lower(entry.synonyms):
        bonus += 300
    return bonus


def entry_condition_bonus(entry: CatalogEntry, ctx: ScoringContext) -> float:
    return 200 if has_marker(entry.condition, ctx.tables.clean_condition_markers) else 0


def entry_category_bonus(entry: CatalogEntry, ctx: ScoringContext) -> float:
    return -200 if is_residual(entry, ctx.tables) else 150


ENTRY_RULES: Tuple[ScoringRule, ...] = (
    ScoringRule("material_alignment", entry_material_bonus),
    ScoringRule("exact_name", exact_name_bonus),
    ScoringRule("contains_term", contains_term_bonus),
    ScoringRule("clean_condition", entry_condition_bonus),
    ScoringRule("home_category", entry_category_bonus),
)


def apply_rules(entry: CatalogEntry, rules: Sequence[ScoringRule], ctx: ScoringContext) -> float:
    return sum(rule.score(entry, ctx) for rule in rules)


def explain(entry: CatalogEntry, rules: Sequence[ScoringRule], ctx: ScoringContext) -> List[Tuple[str, float]]:
    """Non-zero (rule name, delta) pairs, for the decision log."""
    deltas = [(rule.name, rule.score(entry, ctx)) for rule in rules]
    return [(name, delta) for name, delta in deltas if delta]


def rank(entries: Sequence[CatalogEntry], rules: Sequence[ScoringRule], ctx: ScoringContext) -> List[Tuple[CatalogEntry, float]]:
    """Entries with scores, highest first. Ties keep input order."""
    scored = [(entry, apply_rules(entry, rules, ctx)) for entry in entries]
    return sorted(scored, key=lambda pair: pair[1], reverse=True)
