"""
Lookup Tables - Static configuration for the matching engine

Built once at process start and passed explicitly into each component, so
tests can substitute their own tables.

Tables:
- Synonym rules: substring of a label → extra search terms (always applied)
- Alternative terms: approximate key → fallback search terms (only used when
  the first search found nothing)
- Material rules: material keyword → home/recycling categories

All category strings match the catalog's own values.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

# === HOME CATEGORIES ===
RESIDUAL = "Residual"
HAZARDOUS = "Hazardous waste"
PLASTIC = "Plastic"
METAL = "Metal"
GLASS = "Glass"
PAPER = "Paper"
CARDBOARD = "Cardboard"
FOOD_WASTE = "Food waste"
TEXTILE_WASTE = "Textile waste"

# === RECYCLING CENTER CATEGORIES ===
RC_RESIDUAL = "Recycling center - residual waste"
RC_ELECTRONICS = "Recycling center - electronics"
RC_BATTERIES = "Recycling center - batteries"
RC_HAZARDOUS = "Recycling center - hazardous waste"
RC_SOFT_PLASTIC = "Recycling center - soft plastic"
RC_HARD_PLASTIC = "Recycling center - hard plastic"
RC_METAL = "Recycling center - metal"
RC_GLASS = "Recycling center - glass"
RC_PAPER = "Recycling center - paper and cardboard"
RC_TEXTILES = "Recycling center - textiles"
RC_ORGANIC = "Recycling center - organic waste"


@dataclass(frozen=True)
class SynonymRule:
    """Inject `terms` when the label description contains any of `triggers`."""
    triggers: Tuple[str, ...]
    terms: Tuple[str, ...]
    # Only apply when the label's material hint contains this (None = always)
    material: Optional[str] = None


@dataclass(frozen=True)
class MaterialRule:
    """
    Map a material string to categories.

    Matches when the material contains any keyword and, if `requires` is set,
    also contains one of those (e.g. "soft" only counts next to "plast").
    """
    name: str
    keywords: Tuple[str, ...]
    home_category: str
    recycling_category: str
    requires: Tuple[str, ...] = ()

    def matches(self, material: str) -> bool:
        if not any(keyword in material for keyword in self.keywords):
            return False
        if self.requires and not any(req in material for req in self.requires):
            return False
        return True


SYNONYM_RULES: Tuple[SynonymRule, ...] = (
    SynonymRule(
        triggers=("pizza", "box"),
        terms=("box", "pizza", "packaging"),
    ),
    SynonymRule(
        triggers=("cardboard", "carton", "container"),
        terms=("box", "packaging", "cardboard", "carton"),
    ),
    SynonymRule(
        triggers=("sheet of paper", "paper sheet"),
        terms=("book", "box", "packaging"),
        material="cardboard",
    ),
    SynonymRule(
        triggers=("sheet of paper", "paper sheet"),
        terms=("newspaper", "book", "envelope"),
    ),
)

ALTERNATIVE_TERMS: Dict[str, Tuple[str, ...]] = {
    "soda can": ("can", "beverage can", "aluminium can"),
    "beer can": ("can", "beverage can"),
    "plastic bottle": ("bottle", "pet bottle", "drink bottle"),
    "water bottle": ("bottle", "drink bottle"),
    "wine bottle": ("bottle", "glass bottle"),
    "jar": ("glass jar", "preserving jar"),
    "mobile phone": ("phone", "mobile", "electronics"),
    "smartphone": ("phone", "mobile", "electronics"),
    "laptop": ("computer", "electronics"),
    "battery": ("batteries", "battery"),
    "light bulb": ("bulb", "lamp"),
    "newspaper": ("newspaper", "magazine", "paper"),
    "magazine": ("magazine", "paper"),
    "t-shirt": ("clothing", "textile", "clothes"),
    "shoe": ("shoes", "footwear"),
    "takeaway cup": ("cup", "paper cup", "coffee cup"),
    "coffee cup": ("cup", "paper cup"),
    "pizza box": ("box", "cardboard box", "pizza"),
    "milk carton": ("carton", "beverage carton"),
    "banana peel": ("fruit", "food waste", "peel"),
    "apple core": ("fruit", "food waste"),
    "tissue": ("napkin", "paper towel"),
    "aluminum foil": ("aluminium foil", "foil"),
    "cling wrap": ("cling film", "plastic film"),
}

MATERIAL_RULES: Tuple[MaterialRule, ...] = (
    MaterialRule("electronics", ("electronic",), HAZARDOUS, RC_ELECTRONICS),
    MaterialRule("battery", ("batter",), HAZARDOUS, RC_BATTERIES),
    MaterialRule("hazardous", ("hazardous", "chemical", "toxic"), HAZARDOUS, RC_HAZARDOUS),
    MaterialRule("soft_plastic", ("soft",), PLASTIC, RC_SOFT_PLASTIC, requires=("plast",)),
    MaterialRule("hard_plastic", ("hard", "rigid"), PLASTIC, RC_HARD_PLASTIC, requires=("plast",)),
    MaterialRule("plastic", ("plast",), PLASTIC, RC_HARD_PLASTIC),
    MaterialRule("metal", ("metal", "steel", "aluminium", "aluminum"), METAL, RC_METAL),
    MaterialRule("glass", ("glass",), GLASS, RC_GLASS),
    MaterialRule("paper", ("paper",), PAPER, RC_PAPER),
    MaterialRule("cardboard", ("cardboard", "carton"), CARDBOARD, RC_PAPER),
    MaterialRule("textile", ("textile", "clothing", "fabric"), TEXTILE_WASTE, RC_TEXTILES),
    MaterialRule("organic", ("organic", "food"), FOOD_WASTE, RC_ORGANIC),
)


@dataclass(frozen=True)
class LookupTables:
    """Everything the engine knows that isn't in the catalog."""
    synonym_rules: Tuple[SynonymRule, ...] = SYNONYM_RULES
    alternative_terms: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(ALTERNATIVE_TERMS))
    material_rules: Tuple[MaterialRule, ...] = MATERIAL_RULES

    # Residual bucket and the pair used when nothing matches
    residual_home: str = RESIDUAL
    residual_recycling: str = RC_RESIDUAL

    # Home categories that indicate a properly sorted fraction
    well_sorted_categories: Tuple[str, ...] = (
        METAL, PLASTIC, PAPER, CARDBOARD, GLASS, FOOD_WASTE, TEXTILE_WASTE,
    )

    # Catalog names that denote a generic material rather than an object
    generic_material_names: Tuple[str, ...] = (
        "aluminium foil", "aluminum foil", "plastic film", "cling film", "metal foil", "plastic wrap",
    )

    # Markers
    soft_plastic_markers: Tuple[str, ...] = ("soft",)
    hard_plastic_markers: Tuple[str, ...] = ("hard", "rigid")
    plastic_markers: Tuple[str, ...] = ("plast",)
    clean_condition_markers: Tuple[str, ...] = ("clean", "dry")
    # Material rules whose keywords mark a hazard class
    hazard_rule_names: Tuple[str, ...] = ("electronics", "battery", "hazardous")

    # Description hints for an otherwise generic plastic
    soft_description_hints: Tuple[str, ...] = ("bag", "film", "wrap", "foil", "sachet")
    hard_description_hints: Tuple[str, ...] = ("bottle", "container", "tub", "jar", "lid")

    # Minimum rapidfuzz score for an alternative-terms key to count as a match
    alternative_match_threshold: float = 85.0

    @property
    def hazard_markers(self) -> Tuple[str, ...]:
        """Keywords of the hazard-class material rules"""
        return tuple(
            keyword
            for rule in self.material_rules if rule.name in self.hazard_rule_names
            for keyword in rule.keywords
        )


DEFAULT_TABLES = LookupTables()
