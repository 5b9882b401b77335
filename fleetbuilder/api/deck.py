"""
Deck API endpoints.

Every endpoint feeds one or more actions through the app-wide DeckSession
and returns the resulting deck view. Rejected actions surface as KnownError
responses (see main.known_error_handler); the deck is left unchanged.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from fleetbuilder.api.dependencies import get_deck_session
from fleetbuilder.api.schemas import DeckResponse
from fleetbuilder.models.actions import (
    Action,
    AddUnit,
    ClearDeck,
    Recommend,
    RemoveUnit,
    RenameDeck,
    ResetFilters,
    SaveDeck,
    SetFactionRule,
    SetNation,
    SetOwnedOnly,
    SetPointCap,
    SetSearchText,
    SetType,
)
from fleetbuilder.models.faction import FactionRule
from fleetbuilder.services.deck_session import DeckSession

router = APIRouter(prefix="/deck", tags=["deck"])


class DeckSettingsRequest(BaseModel):
    """Deck metadata changes. Omitted fields are left as they are."""

    name: str | None = Field(default=None, max_length=255)
    point_cap: int | None = None
    faction_rule: FactionRule | None = None


class FiltersRequest(BaseModel):
    """Filter control changes. Omitted fields are left as they are."""

    search_text: str | None = None
    nation: str | None = None
    type: str | None = None
    owned_only: bool | None = None


class FiltersResponse(BaseModel):
    search_text: str
    nation: str
    type: str
    owned_only: bool


class SaveResponse(BaseModel):
    deck_id: str
    deck: DeckResponse


async def _apply(session: DeckSession, actions: list[Action]) -> DeckResponse:
    for action in actions:
        await session.perform(action)
    return DeckResponse.from_state(session.state, session.factions)


def _filters_response(session: DeckSession) -> FiltersResponse:
    filters = session.state.filters
    return FiltersResponse(
        search_text=filters.search_text,
        nation=filters.nation,
        type=filters.type,
        owned_only=session.state.enforce_ownership,
    )


@router.get("", response_model=DeckResponse)
async def get_deck(
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> DeckResponse:
    """Current deck with entries joined to catalog units and live totals."""
    return DeckResponse.from_state(session.state, session.factions)


@router.post("/units/{unit_id}", response_model=DeckResponse)
async def add_unit(
    unit_id: str,
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> DeckResponse:
    """
    Add one copy of a unit.

    Returns 422 if the copy would break the copy limit, point cap or faction
    rule, and 404 if the unit is not in the catalog.
    """
    return await _apply(session, [AddUnit(unit_id=unit_id)])


@router.delete("/units/{unit_id}", response_model=DeckResponse)
async def remove_unit(
    unit_id: str,
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> DeckResponse:
    """Remove one copy of a unit. Removing an absent unit is a no-op."""
    return await _apply(session, [RemoveUnit(unit_id=unit_id)])


@router.post("/clear", response_model=DeckResponse)
async def clear_deck(
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> DeckResponse:
    return await _apply(session, [ClearDeck()])


@router.post("/recommend", response_model=DeckResponse)
async def recommend_deck(
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> DeckResponse:
    """Greedily fill the deck from the currently displayed units."""
    return await _apply(session, [Recommend()])


@router.patch("/settings", response_model=DeckResponse)
async def update_settings(
    request: DeckSettingsRequest,
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> DeckResponse:
    """
    Rename the deck, change its point cap or faction rule.

    Returns 400 for a point cap outside the preset list.
    """
    actions: list[Action] = []
    if request.name is not None:
        actions.append(RenameDeck(name=request.name))
    if request.point_cap is not None:
        actions.append(SetPointCap(point_cap=request.point_cap))
    if request.faction_rule is not None:
        actions.append(SetFactionRule(rule=request.faction_rule))
    return await _apply(session, actions)


@router.get("/filters", response_model=FiltersResponse)
async def get_filters(
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> FiltersResponse:
    return _filters_response(session)


@router.patch("/filters", response_model=FiltersResponse)
async def update_filters(
    request: FiltersRequest,
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> FiltersResponse:
    """
    Change filter controls.

    Turning owned-only on without a session returns 401.
    """
    actions: list[Action] = []
    if request.search_text is not None:
        actions.append(SetSearchText(text=request.search_text))
    if request.nation is not None:
        actions.append(SetNation(nation=request.nation))
    if request.type is not None:
        actions.append(SetType(type=request.type))
    if request.owned_only is not None:
        actions.append(SetOwnedOnly(owned_only=request.owned_only))

    for action in actions:
        await session.perform(action)
    return _filters_response(session)


@router.delete("/filters", response_model=FiltersResponse)
async def reset_filters(
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> FiltersResponse:
    """Clear search text and set nation and type back to "All"."""
    await session.perform(ResetFilters())
    return _filters_response(session)


@router.post("/save", response_model=SaveResponse)
async def save_deck(
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> SaveResponse:
    """
    Save the deck for the signed-in identity.

    Returns 401 without a session, 422 if the deck breaks its point cap or
    faction rule, and 502 if the deck persister fails.
    """
    state = await session.perform(SaveDeck())
    return SaveResponse(
        deck_id=state.last_saved_deck_id or "",
        deck=DeckResponse.from_state(state, session.factions),
    )
