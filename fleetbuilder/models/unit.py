from collections.abc import Mapping
from dataclasses import dataclass, field

from fleetbuilder.config import EFFECTIVE_RANGES


@dataclass(frozen=True, slots=True)
class Unit:
    """
    A catalog entry.

    Attributes:
        id: Unique unit identifier
        name: Display name (e.g., "Bismarck")
        nation: Nation the unit sailed or flew for (e.g., "Germany")
        type: Unit type (e.g., "Battleship", "Submarine")
        year: Year the unit entered service
        points: Deck cost
        set_name: Expansion the unit was printed in
        rarity: Printing rarity
        abilities: Free-text special abilities
        stats: Range band (0-3) -> effective damage
    """

    id: str
    name: str
    nation: str | None = None
    type: str | None = None
    year: int | None = None
    points: int = 0
    set_name: str | None = None
    rarity: str | None = None
    abilities: str | None = None
    stats: Mapping[int, float] = field(default_factory=dict)

    def effective(self, range_band: int) -> float:
        """Effective damage at a range band (0 when the stat is missing)."""
        return float(self.stats.get(range_band, 0) or 0)

    def total_effective(self) -> float:
        """Sum of effective damage over all range bands."""
        return sum(self.effective(r) for r in EFFECTIVE_RANGES)
