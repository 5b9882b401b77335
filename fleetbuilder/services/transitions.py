"""
State transitions.

transition(state, action, now) -> Transition(state, effects, error)

Pure: no I/O, no clock reads, no mutation. Collaborator calls and timers
come back as effect data for the session runtime to carry out. Known
errors never escape; they land in the notice and in `Transition.error` so
an API caller can report them with the right status.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from fleetbuilder.config import DEFAULT_POINT_CAP, POINT_CAPS
from fleetbuilder.filtering.catalog_filter import filter_catalog
from fleetbuilder.models.actions import (
    Action,
    AddUnit,
    CatalogLoaded,
    ClearDeck,
    CollaboratorFailed,
    CooldownTick,
    Effect,
    LoadOwnership,
    LookupUser,
    OwnershipLoaded,
    PersistCooldown,
    PersistDeck,
    Recommend,
    RemoveUnit,
    RenameDeck,
    RequestSignIn,
    ResetFilters,
    RestoreCooldown,
    SaveDeck,
    SaveSucceeded,
    SendMagicLink,
    SetFactionRule,
    SetNation,
    SetOwnedOnly,
    SetPointCap,
    SetSearchText,
    SetType,
    SignInFailed,
    SignInSucceeded,
    SignOut,
    StartCountdown,
    StartSession,
    StopCountdown,
    UserResolved,
)
from fleetbuilder.models.cooldown import CooldownActiveError, RateLimitError, SignInError
from fleetbuilder.models.deck import UnknownUnitError
from fleetbuilder.models.faction import DEFAULT_FACTION_TABLE, FactionTable
from fleetbuilder.models.failure import AuthenticationRequiredError, FailureKind, KnownError
from fleetbuilder.models.ownership import OwnershipMap
from fleetbuilder.models.state import AppState, Notice, SessionInfo
from fleetbuilder.models.unit import Unit
from fleetbuilder.services.cooldown import apply_rate_limit
from fleetbuilder.services.deck_validator import add_unit, remove_unit, validate_for_save
from fleetbuilder.services.recommender import recommend
from fleetbuilder.services.totals import compute_totals

logger = logging.getLogger(__name__)


@dataclass
class Transition:
    state: AppState
    effects: list[Effect] = field(default_factory=list)
    error: KnownError | None = None


class InvalidSettingError(KnownError):
    def __init__(self, message: str):
        super().__init__(kind=FailureKind.INVALID_INPUT, message=message, status_code=400)


def _fail(state: AppState, error: KnownError) -> Transition:
    return Transition(state=state.evolve(notice=Notice.failure(error.message)), error=error)


def filtered_units(state: AppState, factions: FactionTable = DEFAULT_FACTION_TABLE) -> list[Unit]:
    """Units currently displayed under the active filters."""
    return filter_catalog(state.catalog, state.active_filters, state.ownership, factions)


def save_description(state: AppState, factions: FactionTable = DEFAULT_FACTION_TABLE) -> str:
    totals = compute_totals(state.deck, state.units_by_id, factions)
    faction = totals.faction.value if totals.faction else "Empty"
    return f"{faction} deck — {totals.points}/{state.deck.point_cap} pts"


def transition(
    state: AppState,
    action: Action,
    now: int,
    factions: FactionTable = DEFAULT_FACTION_TABLE,
) -> Transition:
    """
    Apply one action.

    Args:
        state: Current state
        action: What happened
        now: Current time in epoch milliseconds
        factions: Nation -> faction lookup

    Returns:
        Transition with the new state and the effects to schedule

    Raises:
        TypeError: If the action type has no handler
    """
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unsupported action: {type(action).__name__}")

    try:
        return handler(state, action, now, factions)
    except KnownError as e:
        return _fail(state, e)


# =============================================================================
# FILTERS
# =============================================================================


def _set_search_text(
    state: AppState, action: SetSearchText, now: int, factions: FactionTable
) -> Transition:
    return Transition(state.evolve(filters=replace(state.filters, search_text=action.text)))


def _set_nation(
    state: AppState, action: SetNation, now: int, factions: FactionTable
) -> Transition:
    return Transition(state.evolve(filters=replace(state.filters, nation=action.nation)))


def _set_type(state: AppState, action: SetType, now: int, factions: FactionTable) -> Transition:
    return Transition(state.evolve(filters=replace(state.filters, type=action.type)))


def _reset_filters(
    state: AppState, action: ResetFilters, now: int, factions: FactionTable
) -> Transition:
    return Transition(state.evolve(filters=state.filters.reset()))


def _set_owned_only(
    state: AppState, action: SetOwnedOnly, now: int, factions: FactionTable
) -> Transition:
    if action.owned_only and not state.signed_in:
        raise AuthenticationRequiredError("Owned-only filtering")
    return Transition(state.evolve(filters=replace(state.filters, owned_only=action.owned_only)))


# =============================================================================
# DECK SETTINGS AND CONTENTS
# =============================================================================


def _set_point_cap(
    state: AppState, action: SetPointCap, now: int, factions: FactionTable
) -> Transition:
    # Existing entries are not re-checked here; the save gate catches drift
    if action.point_cap not in POINT_CAPS:
        raise InvalidSettingError(
            f"Invalid point cap: {action.point_cap}. Must be one of {list(POINT_CAPS)}"
        )
    return Transition(state.evolve(deck=replace(state.deck, point_cap=action.point_cap)))


def _set_faction_rule(
    state: AppState, action: SetFactionRule, now: int, factions: FactionTable
) -> Transition:
    return Transition(state.evolve(deck=replace(state.deck, faction_rule=action.rule)))


def _rename_deck(
    state: AppState, action: RenameDeck, now: int, factions: FactionTable
) -> Transition:
    return Transition(state.evolve(deck=replace(state.deck, name=action.name)))


def _add_unit(state: AppState, action: AddUnit, now: int, factions: FactionTable) -> Transition:
    unit = state.units_by_id.get(action.unit_id)
    if unit is None:
        raise UnknownUnitError(action.unit_id)

    deck = add_unit(
        unit,
        state.deck,
        state.units_by_id,
        state.ownership,
        enforce_ownership=state.enforce_ownership,
        factions=factions,
    )
    return Transition(state.evolve(deck=deck, notice=Notice()))


def _remove_unit(
    state: AppState, action: RemoveUnit, now: int, factions: FactionTable
) -> Transition:
    return Transition(state.evolve(deck=remove_unit(state.deck, action.unit_id)))


def _clear_deck(
    state: AppState, action: ClearDeck, now: int, factions: FactionTable
) -> Transition:
    return Transition(state.evolve(deck=state.deck.cleared()))


def _recommend(state: AppState, action: Recommend, now: int, factions: FactionTable) -> Transition:
    result = recommend(
        filtered_units(state, factions),
        state.deck,
        state.ownership,
        enforce_ownership=state.enforce_ownership,
    )
    return Transition(state.evolve(deck=result.deck, notice=Notice()))


# =============================================================================
# SAVE
# =============================================================================


def _save_deck(state: AppState, action: SaveDeck, now: int, factions: FactionTable) -> Transition:
    if state.session is None:
        raise AuthenticationRequiredError("Saving a deck")

    validate_for_save(state.deck, state.units_by_id, factions)

    effect = PersistDeck(
        user_id=state.session.user_id,
        access_token=state.session.access_token,
        deck=state.deck,
        description=save_description(state, factions),
    )
    return Transition(state.evolve(saving=True, notice=Notice()), effects=[effect])


def _save_succeeded(
    state: AppState, action: SaveSucceeded, now: int, factions: FactionTable
) -> Transition:
    return Transition(
        state.evolve(
            saving=False,
            last_saved_deck_id=action.deck_id,
            notice=Notice.success("Deck saved"),
        )
    )


# =============================================================================
# SIGN IN AND COOLDOWN
# =============================================================================


def _request_sign_in(
    state: AppState, action: RequestSignIn, now: int, factions: FactionTable
) -> Transition:
    if not action.email:
        raise InvalidSettingError("Enter an email first")

    remaining = state.cooldown.remaining_seconds(now)
    if remaining > 0:
        raise CooldownActiveError(remaining)

    return Transition(state.evolve(notice=Notice()), effects=[SendMagicLink(email=action.email)])


def _sign_in_succeeded(
    state: AppState, action: SignInSucceeded, now: int, factions: FactionTable
) -> Transition:
    return Transition(state.evolve(notice=Notice.success("Magic link sent. Check your email.")))


def _sign_in_failed(
    state: AppState, action: SignInFailed, now: int, factions: FactionTable
) -> Transition:
    if not action.failure.is_rate_limited:
        raise SignInError(action.failure)

    timer, wait = apply_rate_limit(state.cooldown, action.failure, now)
    error = RateLimitError(wait)
    return Transition(
        state.evolve(
            cooldown=timer,
            countdown=timer.remaining_seconds(now),
            notice=Notice.failure(error.message),
        ),
        effects=[PersistCooldown(timer=timer), StartCountdown(timer=timer)],
        error=error,
    )


def _restore_cooldown(
    state: AppState, action: RestoreCooldown, now: int, factions: FactionTable
) -> Transition:
    remaining = action.timer.remaining_seconds(now)
    effects: list[Effect] = [StartCountdown(timer=action.timer)] if remaining > 0 else []
    return Transition(state.evolve(cooldown=action.timer, countdown=remaining), effects=effects)


def _cooldown_tick(
    state: AppState, action: CooldownTick, now: int, factions: FactionTable
) -> Transition:
    effects: list[Effect] = [StopCountdown()] if action.remaining == 0 else []
    return Transition(state.evolve(countdown=action.remaining), effects=effects)


# =============================================================================
# SESSION
# =============================================================================


def _start_session(
    state: AppState, action: StartSession, now: int, factions: FactionTable
) -> Transition:
    return Transition(state, effects=[LookupUser(access_token=action.access_token)])


def _user_resolved(
    state: AppState, action: UserResolved, now: int, factions: FactionTable
) -> Transition:
    session = SessionInfo(
        access_token=action.access_token,
        user_id=action.user_id,
        email=action.email,
    )
    return Transition(
        state.evolve(session=session, filters=replace(state.filters, owned_only=True)),
        effects=[LoadOwnership(access_token=action.access_token)],
    )


def _ownership_loaded(
    state: AppState, action: OwnershipLoaded, now: int, factions: FactionTable
) -> Transition:
    if state.session is None or state.session.access_token != action.access_token:
        logger.info("Ignoring ownership loaded for an inactive session")
        return Transition(state)
    return Transition(state.evolve(ownership=action.ownership))


def _sign_out(state: AppState, action: SignOut, now: int, factions: FactionTable) -> Transition:
    return Transition(
        state.evolve(
            session=None,
            ownership=OwnershipMap(),
            filters=replace(state.filters, owned_only=False),
        )
    )


# =============================================================================
# COLLABORATOR COMPLETIONS
# =============================================================================


def _catalog_loaded(
    state: AppState, action: CatalogLoaded, now: int, factions: FactionTable
) -> Transition:
    return Transition(state.evolve(catalog=tuple(action.units)))


def _collaborator_failed(
    state: AppState, action: CollaboratorFailed, now: int, factions: FactionTable
) -> Transition:
    # The affected slot keeps its last-known value; only the notice changes
    logger.warning("Collaborator failure during %s: %s", action.operation, action.message)
    saving = False if action.operation == "save" else state.saving
    return Transition(state.evolve(notice=Notice.failure(action.message), saving=saving))


_HANDLERS: dict[type, Callable[[AppState, Any, int, FactionTable], Transition]] = {
    SetSearchText: _set_search_text,
    SetNation: _set_nation,
    SetType: _set_type,
    ResetFilters: _reset_filters,
    SetOwnedOnly: _set_owned_only,
    SetPointCap: _set_point_cap,
    SetFactionRule: _set_faction_rule,
    RenameDeck: _rename_deck,
    AddUnit: _add_unit,
    RemoveUnit: _remove_unit,
    ClearDeck: _clear_deck,
    Recommend: _recommend,
    SaveDeck: _save_deck,
    SaveSucceeded: _save_succeeded,
    RequestSignIn: _request_sign_in,
    SignInSucceeded: _sign_in_succeeded,
    SignInFailed: _sign_in_failed,
    RestoreCooldown: _restore_cooldown,
    CooldownTick: _cooldown_tick,
    StartSession: _start_session,
    UserResolved: _user_resolved,
    OwnershipLoaded: _ownership_loaded,
    SignOut: _sign_out,
    CatalogLoaded: _catalog_loaded,
    CollaboratorFailed: _collaborator_failed,
}


def initial_state(point_cap: int = DEFAULT_POINT_CAP) -> AppState:
    """Empty state: no catalog, anonymous, empty deck, no cooldown."""
    return AppState(deck=replace(AppState().deck, point_cap=point_cap))
