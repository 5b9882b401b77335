"""
Fleetbuilder services.

Deck rules, totals, recommendation, sign-in cooldown and the session
runtime that ties them together.
"""

from fleetbuilder.services.catalog import join_catalog, load_catalog_file
from fleetbuilder.services.cooldown import (
    CooldownStore,
    CountdownTicker,
    apply_rate_limit,
    now_ms,
    parse_wait_seconds,
    wait_seconds_from_message,
)
from fleetbuilder.services.deck_session import Collaborators, DeckSession
from fleetbuilder.services.deck_validator import (
    add_unit,
    can_add,
    check_add,
    remove_unit,
    validate_for_save,
)
from fleetbuilder.services.recommender import (
    Recommendation,
    ScoredUnit,
    rank_candidates,
    recommend,
    score_unit,
)
from fleetbuilder.services.totals import DeckItem, DeckTotals, compute_totals, deck_items
from fleetbuilder.services.transitions import Transition, initial_state, transition

__all__ = [
    # Catalog
    "join_catalog",
    "load_catalog_file",
    # Cooldown
    "CooldownStore",
    "CountdownTicker",
    "apply_rate_limit",
    "now_ms",
    "parse_wait_seconds",
    "wait_seconds_from_message",
    # Session
    "Collaborators",
    "DeckSession",
    # Validation
    "add_unit",
    "can_add",
    "check_add",
    "remove_unit",
    "validate_for_save",
    # Recommendation
    "Recommendation",
    "ScoredUnit",
    "rank_candidates",
    "recommend",
    "score_unit",
    # Totals
    "DeckItem",
    "DeckTotals",
    "compute_totals",
    "deck_items",
    # Transitions
    "Transition",
    "initial_state",
    "transition",
]
