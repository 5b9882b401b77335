"""
Response models shared by the deck, catalog and auth routers.
"""

from pydantic import BaseModel, Field

from fleetbuilder.models.faction import DEFAULT_FACTION_TABLE, FactionTable
from fleetbuilder.models.state import AppState
from fleetbuilder.models.unit import Unit
from fleetbuilder.services.totals import compute_totals, deck_items


class UnitResponse(BaseModel):
    """One catalog unit."""

    id: str
    name: str
    nation: str | None = None
    type: str | None = None
    year: int | None = None
    points: int = 0
    set_name: str | None = None
    rarity: str | None = None
    abilities: str | None = None
    stats: dict[int, float] = Field(default_factory=dict)

    @classmethod
    def from_unit(cls, unit: Unit) -> "UnitResponse":
        return cls(
            id=unit.id,
            name=unit.name,
            nation=unit.nation,
            type=unit.type,
            year=unit.year,
            points=unit.points,
            set_name=unit.set_name,
            rarity=unit.rarity,
            abilities=unit.abilities,
            stats=dict(unit.stats),
        )


class DeckItemResponse(BaseModel):
    unit: UnitResponse
    count: int


class TotalsResponse(BaseModel):
    points: int
    effective_by_range: dict[int, float]
    faction: str | None = None
    unit_count: int
    entry_count: int


class NoticeResponse(BaseModel):
    error: str = ""
    ok: str = ""


class DeckResponse(BaseModel):
    """The deck under construction with its live totals."""

    name: str
    point_cap: int
    faction_rule: str
    items: list[DeckItemResponse]
    totals: TotalsResponse
    notice: NoticeResponse
    saving: bool = False
    last_saved_deck_id: str | None = None

    @classmethod
    def from_state(
        cls, state: AppState, factions: FactionTable = DEFAULT_FACTION_TABLE
    ) -> "DeckResponse":
        deck = state.deck
        totals = compute_totals(deck, state.units_by_id, factions)
        return cls(
            name=deck.name,
            point_cap=deck.point_cap,
            faction_rule=deck.faction_rule.value,
            items=[
                DeckItemResponse(unit=UnitResponse.from_unit(item.unit), count=item.count)
                for item in deck_items(deck, state.units_by_id)
            ],
            totals=TotalsResponse(**totals.to_dict()),
            notice=NoticeResponse(error=state.notice.error, ok=state.notice.ok),
            saving=state.saving,
            last_saved_deck_id=state.last_saved_deck_id,
        )
