"""
Categorization Resolver - Rule-based home/recycling decision

Given the winning catalog entry and the AI's material hint, decide which
categories to show. NO AI CALLS - pure rules, first match wins:

1. AI material is hazardous and the catalog has no material → trust AI (ai-hazardous)
2. Catalog material is precise (soft/hard sub-type or "X - Y") and both
   categories are present → catalog verbatim (database-precise)
3. Catalog material is a generic plastic and the AI names a soft/hard
   sub-type → that sub-type's categories (ai-specific)
4. Both catalog categories present → catalog (database)
5. AI material present → classify from AI material (ai-fallback)
6. Otherwise → residual waste (fallback)

Example:
- Catalog "Tub", material "Plastic", AI material "hard plastic"
  → Plastic / Recycling center - hard plastic (ai-specific)
"""
import re
from typing import Optional, Tuple

import structlog

from packages.domain.waste_matching.lookup_tables import DEFAULT_TABLES, LookupTables, MaterialRule
from packages.domain.waste_matching.schemas import CategorizationResult, CategorizationSource
from packages.domain.waste_matching.scoring_rules import has_marker

logger = structlog.get_logger()

# "Paper - coated", "Plastic - PET" and the like
_COMPOUND_MATERIAL = re.compile(r"\S\s+-\s+\S")


class CategorizationResolver:
    """
    Maps (catalog entry, AI material) to a CategorizationResult.
    """

    def __init__(self, tables: LookupTables = DEFAULT_TABLES):
        self.tables = tables

    def categorize(
        self,
        db_material: Optional[str],
        db_home: Optional[str],
        db_recycling: Optional[str],
        ai_material: Optional[str],
        ai_description: str = "",
    ) -> CategorizationResult:
        """
        Apply the precedence rules.

        Args:
            db_material: Material of the winning catalog entry
            db_home: Home category of the winning catalog entry
            db_recycling: Recycling center category of the winning catalog entry
            ai_material: Material hint from the winning label
            ai_description: Description of the winning label (plastic sub-type hint)

        Returns:
            CategorizationResult with a non-empty source
        """
        tables = self.tables
        db_material = (db_material or "").strip()
        ai_material = (ai_material or "").strip()
        has_db_categories = bool((db_home or "").strip()) and bool((db_recycling or "").strip())

        # Rule 1: AI spots a hazard the catalog entry doesn't describe
        if ai_material and not db_material and has_marker(ai_material, tables.hazard_markers):
            return self._result(self.classify_material(ai_material, ai_description),
                                CategorizationSource.AI_HAZARDOUS)

        # Rule 2: Catalog already knows the exact sub-type
        if has_db_categories and self.is_precise_material(db_material):
            return self._result((db_home, db_recycling), CategorizationSource.DATABASE_PRECISE)

        # Rule 3: Generic catalog plastic, AI knows the sub-type
        refined = self._ai_refinement(db_material, ai_material) if has_db_categories and db_material else None
        if refined is not None:
            return self._result((refined.home_category, refined.recycling_category),
                                CategorizationSource.AI_SPECIFIC)

        # Rule 4: Catalog categories as-is
        if has_db_categories:
            return self._result((db_home, db_recycling), CategorizationSource.DATABASE)

        # Rule 5: No catalog categories, fall back to the AI material
        if ai_material:
            return self._result(self.classify_material(ai_material, ai_description),
                                CategorizationSource.AI_FALLBACK)

        # Rule 6: Nothing usable
        return self._result((tables.residual_home, tables.residual_recycling), CategorizationSource.FALLBACK)

    def is_precise_material(self, material: Optional[str]) -> bool:
        """Material carries an explicit sub-type (soft/hard) or a compound "X - Y" form."""
        if not material:
            return False
        tables = self.tables
        if has_marker(material, tables.soft_plastic_markers) or has_marker(material, tables.hard_plastic_markers):
            return True
        return bool(_COMPOUND_MATERIAL.search(material))

    def _ai_refinement(self, db_material: str, ai_material: str) -> Optional[MaterialRule]:
        """
        Sub-type rule for a plastic the catalog only knows generically.

        The sub-type comes from the marker the AI used ("rigid" alone is
        enough, the catalog already says it is plastic).
        """
        tables = self.tables
        if not ai_material or not has_marker(db_material, tables.plastic_markers):
            return None
        for markers, rule_name in ((tables.soft_plastic_markers, "soft_plastic"),
                                   (tables.hard_plastic_markers, "hard_plastic")):
            if has_marker(ai_material, markers) and not has_marker(db_material, markers):
                return self._rule(rule_name)
        return None

    def _rule(self, name: str) -> Optional[MaterialRule]:
        return next((r for r in self.tables.material_rules if r.name == name), None)

    def classify_material(self, material: str, description: Optional[str] = None) -> Tuple[str, str]:
        """
        Map a material string to (home, recycling) via the material rules.

        Description hints (bag/film/wrap → soft, bottle/container → hard)
        beat the generic plastic rule, never an explicit sub-type.
        Unmatched material falls back to residual waste.
        """
        tables = self.tables
        material_lower = material.lower()
        description_lower = (description or "").lower()

        rule: Optional[MaterialRule] = next(
            (r for r in tables.material_rules if r.matches(material_lower)), None
        )
        if rule is None:
            logger.debug("material_unmatched", material=material)
            return tables.residual_home, tables.residual_recycling

        if rule.name == "plastic" and description_lower:
            hinted = None
            if any(hint in description_lower for hint in tables.soft_description_hints):
                hinted = "soft_plastic"
            elif any(hint in description_lower for hint in tables.hard_description_hints):
                hinted = "hard_plastic"
            if hinted:
                rule = self._rule(hinted) or rule

        logger.debug("material_classified", material=material, rule=rule.name)
        return rule.home_category, rule.recycling_category

    def _result(self, categories: Tuple[str, str], source: CategorizationSource) -> CategorizationResult:
        home, recycling = categories
        logger.info("categorization_resolved",
                    home_category=home,
                    recycling_category=recycling,
                    source=source.value)
        return CategorizationResult(home_category=home, recycling_category=recycling, source=source)


# Singleton instance
categorization_resolver = CategorizationResolver()
