"""
Nation-to-faction lookup.

Every unit carries a nation. Deck rules care about the historical side that
nation fought on, so nations are classified through a single lookup table
instead of literals scattered across filters and validators.

INVARIANT: A nation belongs to at most one faction.
Nations absent from the table belong to neither side.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum


class Faction(str, Enum):
    """Historical side of a nation (or of a whole deck)."""

    AXIS = "Axis"
    ALLIES = "Allies"
    MIXED = "Mixed"


class FactionRule(str, Enum):
    """Deck-level faction constraint."""

    AXIS_ONLY = "axis_only"
    ALLIES_ONLY = "allies_only"
    MIXED = "mixed"

    @property
    def required_faction(self) -> Faction | None:
        """Faction every unit must belong to, or None when any mix is allowed."""
        if self is FactionRule.AXIS_ONLY:
            return Faction.AXIS
        if self is FactionRule.ALLIES_ONLY:
            return Faction.ALLIES
        return None

    @property
    def label(self) -> str:
        return {
            FactionRule.AXIS_ONLY: "Axis-only",
            FactionRule.ALLIES_ONLY: "Allies-only",
            FactionRule.MIXED: "Mixed",
        }[self]


AXIS_NATIONS = frozenset(
    {"Germany", "Italy", "Japan", "Finland", "Romania", "Hungary", "Bulgaria", "Axis"}
)

ALLIED_NATIONS = frozenset(
    {
        "USA",
        "United States",
        "United Kingdom",
        "UK",
        "Britain",
        "Soviet Union",
        "USSR",
        "France",
        "Canada",
        "Netherlands",
        "Poland",
        "Australia",
        "New Zealand",
        "Greece",
        "Norway",
        "Allies",
    }
)


@dataclass(frozen=True)
class FactionTable:
    """
    Injectable nation -> faction mapping.

    Usage:
        table = FactionTable.from_sets(axis={"Germany"}, allies={"USA"})
        table.faction_of("Germany")  # Faction.AXIS
        table.classify(["Germany", "USA"])  # Faction.MIXED
    """

    nations: Mapping[str, Faction] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for nation, faction in self.nations.items():
            if faction is Faction.MIXED:
                raise ValueError(f"Nation '{nation}' cannot be mapped to {faction.value}")

    @classmethod
    def from_sets(cls, axis: Iterable[str], allies: Iterable[str]) -> "FactionTable":
        """
        Build a table from two membership sets.

        Raises:
            ValueError: If a nation appears in both sets
        """
        axis_set = set(axis)
        allies_set = set(allies)
        overlap = axis_set & allies_set
        if overlap:
            raise ValueError(f"Nations on both sides: {sorted(overlap)}")

        nations: dict[str, Faction] = {nation: Faction.AXIS for nation in axis_set}
        nations.update({nation: Faction.ALLIES for nation in allies_set})
        return cls(nations=nations)

    def faction_of(self, nation: str | None) -> Faction | None:
        """Faction of a single nation, None if the nation is unknown."""
        if nation is None:
            return None
        return self.nations.get(nation)

    def belongs_to(self, nation: str | None, faction: Faction) -> bool:
        return self.faction_of(nation) is faction

    def classify(self, nations: Iterable[str | None]) -> Faction | None:
        """
        Classify a group of nations.

        Returns AXIS if every nation is Axis, ALLIES if every nation is Allied,
        MIXED otherwise (including unknown nations). An empty group has no
        classification and returns None.
        """
        distinct = set(nations)
        if not distinct:
            return None

        if all(self.belongs_to(nation, Faction.AXIS) for nation in distinct):
            return Faction.AXIS
        if all(self.belongs_to(nation, Faction.ALLIES) for nation in distinct):
            return Faction.ALLIES
        return Faction.MIXED


DEFAULT_FACTION_TABLE = FactionTable.from_sets(axis=AXIS_NATIONS, allies=ALLIED_NATIONS)
