"""
Catalog API endpoints.

Exposes the units displayed under the session's active filters and the
values the filter dropdowns offer.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from fleetbuilder.api.dependencies import get_deck_session
from fleetbuilder.api.schemas import UnitResponse
from fleetbuilder.config import POINT_CAPS
from fleetbuilder.filtering import nation_options, type_options
from fleetbuilder.models.faction import FactionRule
from fleetbuilder.services.deck_session import DeckSession
from fleetbuilder.services.transitions import filtered_units

router = APIRouter(prefix="/catalog", tags=["catalog"])


class CatalogResponse(BaseModel):
    units: list[UnitResponse]
    count: int
    total: int


class OptionsResponse(BaseModel):
    nations: list[str]
    types: list[str]
    point_caps: list[int]
    faction_rules: list[str]


@router.get("/units", response_model=CatalogResponse)
async def list_units(
    session: Annotated[DeckSession, Depends(get_deck_session)],
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> CatalogResponse:
    """
    Units passing the active filters, in catalog order.

    `count` is the number of matching units before `limit` is applied.
    """
    state = session.state
    units = filtered_units(state, session.factions)
    shown = units[:limit] if limit else units
    return CatalogResponse(
        units=[UnitResponse.from_unit(u) for u in shown],
        count=len(units),
        total=len(state.catalog),
    )


@router.get("/options", response_model=OptionsResponse)
async def filter_options(
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> OptionsResponse:
    catalog = session.state.catalog
    return OptionsResponse(
        nations=nation_options(catalog),
        types=type_options(catalog),
        point_caps=list(POINT_CAPS),
        faction_rules=[rule.value for rule in FactionRule],
    )
