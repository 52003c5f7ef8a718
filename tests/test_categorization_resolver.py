import pytest

from packages.domain.waste_matching.categorization_resolver import CategorizationResolver
from packages.domain.waste_matching.lookup_tables import (
    HAZARDOUS,
    METAL,
    PLASTIC,
    RC_BATTERIES,
    RC_ELECTRONICS,
    RC_HAZARDOUS,
    RC_HARD_PLASTIC,
    RC_METAL,
    RC_RESIDUAL,
    RC_SOFT_PLASTIC,
    RESIDUAL,
    LookupTables,
    MaterialRule,
)
from packages.domain.waste_matching.schemas import CategorizationSource
from tests.stubs import GENERIC_PLASTIC_RC

resolver = CategorizationResolver()


def test_generic_catalog_plastic_refined_by_ai_subtype():
    result = resolver.categorize("Plastic", PLASTIC, GENERIC_PLASTIC_RC, "hard plastic")

    assert result.source == CategorizationSource.AI_SPECIFIC
    assert (result.home_category, result.recycling_category) == (PLASTIC, RC_HARD_PLASTIC)


def test_battery_without_catalog_material_is_hazardous():
    result = resolver.categorize(None, "", "", "battery")

    assert result.source == CategorizationSource.AI_HAZARDOUS
    assert (result.home_category, result.recycling_category) == (HAZARDOUS, RC_BATTERIES)


def test_hazard_ignored_when_catalog_has_material():
    result = resolver.categorize("Metal", METAL, RC_METAL, "electronics")
    assert result.source == CategorizationSource.DATABASE


def test_precise_catalog_material_wins_over_ai():
    soft = resolver.categorize("Soft plastic", PLASTIC, RC_SOFT_PLASTIC, "hard plastic")
    assert soft.source == CategorizationSource.DATABASE_PRECISE
    assert soft.recycling_category == RC_SOFT_PLASTIC

    compound = resolver.categorize("Paper - coated", RESIDUAL, RC_RESIDUAL, "paper")
    assert compound.source == CategorizationSource.DATABASE_PRECISE
    assert compound.home_category == RESIDUAL


def test_ai_subtype_does_not_reclassify_non_plastic():
    result = resolver.categorize("Metal", METAL, RC_METAL, "soft plastic")
    assert result.source == CategorizationSource.DATABASE
    assert result.home_category == METAL


def test_missing_catalog_categories_fall_back_to_ai_material():
    result = resolver.categorize(None, None, None, "plastic", "plastic bag")

    assert result.source == CategorizationSource.AI_FALLBACK
    assert result.recycling_category == RC_SOFT_PLASTIC


def test_description_hint_never_overrides_explicit_subtype():
    result = resolver.categorize(None, "", "", "hard plastic", "carrier bag")
    assert result.recycling_category == RC_HARD_PLASTIC


def test_unmatched_ai_material_is_residual():
    result = resolver.categorize(None, "", "", "ceramic")
    assert result.source == CategorizationSource.AI_FALLBACK
    assert (result.home_category, result.recycling_category) == (RESIDUAL, RC_RESIDUAL)


def test_nothing_usable_is_fallback():
    result = resolver.categorize(None, None, None, None)
    assert result.source == CategorizationSource.FALLBACK
    assert (result.home_category, result.recycling_category) == (RESIDUAL, RC_RESIDUAL)


def test_one_missing_category_is_not_enough():
    result = resolver.categorize("Plastic", PLASTIC, "", None)
    assert result.source == CategorizationSource.FALLBACK


def test_electronics_keyword():
    assert resolver.classify_material("Electronics") == (HAZARDOUS, RC_ELECTRONICS)


def test_substitute_residual_pair():
    tables = LookupTables(residual_home="Rest", residual_recycling="Rest container")
    result = CategorizationResolver(tables).categorize(None, None, None, None)
    assert (result.home_category, result.recycling_category) == ("Rest", "Rest container")


@pytest.mark.parametrize("ai_material, expected_recycling", [
    ("rigid", RC_HARD_PLASTIC),
    ("hard", RC_HARD_PLASTIC),
    ("hard rubber", RC_HARD_PLASTIC),
    ("soft", RC_SOFT_PLASTIC),
])
def test_bare_subtype_keeps_generic_plastic_as_plastic(ai_material, expected_recycling):
    result = resolver.categorize("Plastic", PLASTIC, GENERIC_PLASTIC_RC, ai_material, "tub")

    assert result.source == CategorizationSource.AI_SPECIFIC
    assert (result.home_category, result.recycling_category) == (PLASTIC, expected_recycling)


def test_every_hazardous_keyword_triggers_hazard_rule():
    result = resolver.categorize(None, "", "", "toxic chemical")

    assert result.source == CategorizationSource.AI_HAZARDOUS
    assert (result.home_category, result.recycling_category) == (HAZARDOUS, RC_HAZARDOUS)


def test_hazard_markers_follow_material_rules():
    tables = LookupTables(material_rules=(
        MaterialRule("hazardous", ("solvent",), HAZARDOUS, RC_HAZARDOUS),
    ))
    assert tables.hazard_markers == ("solvent",)
    assert CategorizationResolver(tables).categorize(None, "", "", "paint solvent").source == \
        CategorizationSource.AI_HAZARDOUS
