"""
Totals aggregation.

Live deck-wide numbers shown next to the deck: point total, effective damage
per range band, and which side the deck's nations fought on.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from fleetbuilder.config import EFFECTIVE_RANGES
from fleetbuilder.models.deck import Deck
from fleetbuilder.models.faction import DEFAULT_FACTION_TABLE, Faction, FactionTable
from fleetbuilder.models.unit import Unit


@dataclass(frozen=True)
class DeckItem:
    """A deck entry joined to its catalog unit."""

    unit: Unit
    count: int


@dataclass
class DeckTotals:
    """Aggregates over a deck."""

    points: int = 0
    effective_by_range: dict[int, float] = field(
        default_factory=lambda: {r: 0.0 for r in EFFECTIVE_RANGES}
    )
    faction: Faction | None = None  # None for an empty deck
    unit_count: int = 0
    entry_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "points": self.points,
            "effective_by_range": dict(self.effective_by_range),
            "faction": self.faction.value if self.faction else None,
            "unit_count": self.unit_count,
            "entry_count": self.entry_count,
        }


def deck_items(deck: Deck, units_by_id: Mapping[str, Unit]) -> list[DeckItem]:
    """
    Join deck entries to catalog units.

    Entries whose unit is missing from the catalog are skipped.
    """
    return [
        DeckItem(unit=units_by_id[entry.unit_id], count=entry.count)
        for entry in deck
        if entry.unit_id in units_by_id
    ]


def deck_points(deck: Deck, units_by_id: Mapping[str, Unit]) -> int:
    return sum(item.unit.points * item.count for item in deck_items(deck, units_by_id))


def deck_faction(
    deck: Deck,
    units_by_id: Mapping[str, Unit],
    factions: FactionTable = DEFAULT_FACTION_TABLE,
) -> Faction | None:
    """Classify every distinct nation in the deck. None for an empty deck."""
    return factions.classify(item.unit.nation for item in deck_items(deck, units_by_id))


def compute_totals(
    deck: Deck,
    units_by_id: Mapping[str, Unit],
    factions: FactionTable = DEFAULT_FACTION_TABLE,
) -> DeckTotals:
    """
    Compute live totals for a deck.

    - points = sum(count * points)
    - effective_by_range[r] = sum(count * stats[r]), missing stats count as 0
    - faction = classification of the deck's nations
    """
    items = deck_items(deck, units_by_id)

    effective = {r: 0.0 for r in EFFECTIVE_RANGES}
    for item in items:
        for r in EFFECTIVE_RANGES:
            effective[r] += item.unit.effective(r) * item.count

    return DeckTotals(
        points=sum(item.unit.points * item.count for item in items),
        effective_by_range=effective,
        faction=factions.classify(item.unit.nation for item in items),
        unit_count=sum(item.count for item in items),
        entry_count=len(items),
    )
