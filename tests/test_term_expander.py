from packages.domain.waste_matching.lookup_tables import LookupTables, SynonymRule
from packages.domain.waste_matching.schemas import CandidateLabel
from packages.domain.waste_matching.term_expander import (
    expand,
    expand_alternatives,
    matching_alternative_keys,
    tokenize,
)


def test_tokenize_drops_short_tokens_and_splits_hyphens():
    assert tokenize("a tin-can of soup") == ["tin", "can", "soup"]


def test_expand_puts_normalized_description_first():
    terms = expand(CandidateLabel(description="  Plastic   BAG "))
    assert terms[0] == "plastic bag"
    assert terms == ["plastic bag", "plastic", "bag"]


def test_expand_injects_container_synonyms():
    terms = expand(CandidateLabel(description="Cardboard container"))
    assert terms == ["cardboard container", "cardboard", "container", "box", "packaging", "carton"]


def test_material_conditioned_rule_shadows_general_rule():
    with_cardboard = expand(CandidateLabel(description="sheet of paper", material="cardboard"))
    assert "book" in with_cardboard
    assert "newspaper" not in with_cardboard

    plain = expand(CandidateLabel(description="sheet of paper"))
    assert "newspaper" in plain
    assert "envelope" in plain


def test_expand_uses_substitute_tables():
    tables = LookupTables(synonym_rules=(SynonymRule(triggers=("gizmo",), terms=("gadget",)),))
    assert expand(CandidateLabel(description="gizmo"), tables) == ["gizmo", "gadget"]


def test_expand_is_deduplicated():
    terms = expand(CandidateLabel(description="box"))
    assert len(terms) == len(set(terms))
    assert terms[0] == "box"


def test_alternative_keys_tolerate_missing_space():
    assert "mobile phone" in matching_alternative_keys("mobilephone")


def test_alternative_keys_plain_substring():
    assert "soda can" in matching_alternative_keys("crushed soda can")


def test_expand_alternatives_without_match_returns_description_only():
    label = CandidateLabel(description="zxqv")
    assert expand_alternatives(label) == ["zxqv"]


def test_expand_alternatives_appends_table_terms():
    label = CandidateLabel(description="soda can")
    terms = expand_alternatives(label)
    assert terms[0] == "soda can"
    assert "beverage can" in terms
    assert "aluminium can" in terms
