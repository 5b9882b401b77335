"""
Catalog Filter Pipeline — narrows the unit catalog to the displayed subset.

INVARIANTS:
- Filtering is monotonic (only removes units, never adds)
- Catalog order is preserved
- Same filters + catalog + ownership -> same result (pure)
- Default filters -> full catalog (passthrough), except the faction stage,
  which is active whenever the rule is not mixed
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace

from fleetbuilder.models.faction import DEFAULT_FACTION_TABLE, FactionRule, FactionTable
from fleetbuilder.models.ownership import OwnershipMap
from fleetbuilder.models.unit import Unit

logger = logging.getLogger(__name__)

ALL = "All"


@dataclass(frozen=True)
class CatalogFilters:
    """Active filter controls."""

    search_text: str = ""
    nation: str = ALL
    type: str = ALL
    faction_rule: FactionRule = FactionRule.AXIS_ONLY
    owned_only: bool = False

    def reset(self) -> "CatalogFilters":
        """Clear search text, nation and type. Rule and owned-only are deck settings."""
        return replace(self, search_text="", nation=ALL, type=ALL)


@dataclass
class CatalogFilterMetrics:
    """Unit counts after each stage."""

    total_units: int = 0
    after_text_filter: int = 0
    after_nation_filter: int = 0
    after_type_filter: int = 0
    after_faction_filter: int = 0
    after_ownership_filter: int = 0


def _filter_by_text(units: list[Unit], search_text: str) -> list[Unit]:
    """Case-insensitive substring match against name OR abilities."""
    if not search_text:
        return units

    needle = search_text.lower()
    return [
        unit
        for unit in units
        if needle in (unit.name or "").lower() or needle in (unit.abilities or "").lower()
    ]


def _filter_by_nation(units: list[Unit], nation: str) -> list[Unit]:
    if not nation or nation == ALL:
        return units
    return [unit for unit in units if unit.nation == nation]


def _filter_by_type(units: list[Unit], unit_type: str) -> list[Unit]:
    if not unit_type or unit_type == ALL:
        return units
    return [unit for unit in units if unit.type == unit_type]


def _filter_by_faction(
    units: list[Unit],
    rule: FactionRule,
    factions: FactionTable,
) -> list[Unit]:
    """
    Keep units whose nation belongs to the rule's faction.

    Nations on neither side are dropped unless the rule is mixed.
    """
    required = rule.required_faction
    if required is None:
        return units
    return [unit for unit in units if factions.belongs_to(unit.nation, required)]


def _filter_by_ownership(
    units: list[Unit],
    owned_only: bool,
    ownership: OwnershipMap,
) -> list[Unit]:
    """Keep units marked owned or granting at least one copy."""
    if not owned_only:
        return units
    return [unit for unit in units if ownership.is_owned(unit.id)]


def filter_catalog(
    catalog: Sequence[Unit],
    filters: CatalogFilters,
    ownership: OwnershipMap | None = None,
    factions: FactionTable = DEFAULT_FACTION_TABLE,
) -> list[Unit]:
    """
    Narrow the catalog by the active filters.

    Stages, applied in order:
    1. Text (name or abilities)
    2. Nation
    3. Type
    4. Faction rule
    5. Ownership (owned-only)

    Args:
        catalog: Full ordered catalog
        filters: Active filter controls
        ownership: Ownership records of the signed-in identity (empty if anonymous)
        factions: Nation -> faction lookup

    Returns:
        Filtered units in catalog order. An empty list is a valid result.
    """
    ownership = ownership or OwnershipMap()
    metrics = CatalogFilterMetrics(total_units=len(catalog))

    units = list(catalog)

    units = _filter_by_text(units, filters.search_text)
    metrics.after_text_filter = len(units)

    units = _filter_by_nation(units, filters.nation)
    metrics.after_nation_filter = len(units)

    units = _filter_by_type(units, filters.type)
    metrics.after_type_filter = len(units)

    units = _filter_by_faction(units, filters.faction_rule, factions)
    metrics.after_faction_filter = len(units)

    units = _filter_by_ownership(units, filters.owned_only, ownership)
    metrics.after_ownership_filter = len(units)

    logger.debug(
        "catalog_filtered",
        extra={
            "total": metrics.total_units,
            "after_text": metrics.after_text_filter,
            "after_nation": metrics.after_nation_filter,
            "after_type": metrics.after_type_filter,
            "after_faction": metrics.after_faction_filter,
            "final": metrics.after_ownership_filter,
        },
    )

    return units


def nation_options(catalog: Sequence[Unit]) -> list[str]:
    """Nation dropdown values: "All" followed by sorted distinct nations."""
    return [ALL, *sorted({unit.nation for unit in catalog if unit.nation})]


def type_options(catalog: Sequence[Unit]) -> list[str]:
    """Type dropdown values: "All" followed by sorted distinct types."""
    return [ALL, *sorted({unit.type for unit in catalog if unit.type})]
