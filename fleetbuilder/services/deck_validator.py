"""
Constraint Validator — the only sanctioned way to change deck contents.

Two gates:

1. Incremental gate (check_add / can_add): may ONE more copy of a unit be added?
   - copies in deck < copy cap
   - deck points + unit points <= point cap
   - under a non-mixed rule, the unit and the deck belong to the required faction
2. Save gate (validate_for_save): re-check the whole deck before persisting.
   - total points <= point cap
   - deck faction matches the rule when not mixed

Violations raise DeckValidationError subclasses. Nothing is truncated or
auto-corrected.

Each operation is a pure function of its inputs. check-then-act happens
inside one call, so no other mutation can slip between the checks and the
new deck.
"""

import logging
from collections.abc import Mapping

from fleetbuilder.models.deck import (
    CopyLimitExceededError,
    Deck,
    DeckValidationError,
    FactionRuleViolationError,
    PointCapExceededError,
)
from fleetbuilder.models.faction import DEFAULT_FACTION_TABLE, FactionTable
from fleetbuilder.models.ownership import OwnershipMap
from fleetbuilder.models.unit import Unit
from fleetbuilder.services.totals import deck_faction, deck_points

logger = logging.getLogger(__name__)


def check_add(
    unit: Unit,
    deck: Deck,
    units_by_id: Mapping[str, Unit],
    ownership: OwnershipMap | None = None,
    enforce_ownership: bool = False,
    factions: FactionTable = DEFAULT_FACTION_TABLE,
) -> None:
    """
    Verify one more copy of `unit` may be added to `deck`.

    Args:
        unit: Unit to add
        deck: Current deck (supplies point cap and faction rule)
        units_by_id: Catalog index used to price and classify the deck
        ownership: Ownership records (empty when anonymous)
        enforce_ownership: Owned-only mode; missing records then cap at 0
        factions: Nation -> faction lookup

    Raises:
        CopyLimitExceededError: Copy cap already reached
        PointCapExceededError: Unit would push the deck over the point cap
        FactionRuleViolationError: Unit or deck outside the required faction
    """
    ownership = ownership or OwnershipMap()

    current = deck.count_of(unit.id)
    limit = ownership.copy_limit(unit.id, enforce=enforce_ownership)
    if current >= limit:
        raise CopyLimitExceededError(unit.id, requested=current + 1, limit=limit)

    points = deck_points(deck, units_by_id)
    if points + unit.points > deck.point_cap:
        raise PointCapExceededError(points + unit.points, deck.point_cap)

    required = deck.faction_rule.required_faction
    if required is not None:
        if not factions.belongs_to(unit.nation, required):
            raise FactionRuleViolationError(deck.faction_rule, nation=unit.nation)
        current_faction = deck_faction(deck, units_by_id, factions)
        if current_faction is not None and current_faction is not required:
            raise FactionRuleViolationError(deck.faction_rule)


def can_add(
    unit: Unit,
    deck: Deck,
    units_by_id: Mapping[str, Unit],
    ownership: OwnershipMap | None = None,
    enforce_ownership: bool = False,
    factions: FactionTable = DEFAULT_FACTION_TABLE,
) -> bool:
    """Affordance check: True if check_add would pass."""
    try:
        check_add(unit, deck, units_by_id, ownership, enforce_ownership, factions)
    except DeckValidationError:
        return False
    return True


def add_unit(
    unit: Unit,
    deck: Deck,
    units_by_id: Mapping[str, Unit],
    ownership: OwnershipMap | None = None,
    enforce_ownership: bool = False,
    factions: FactionTable = DEFAULT_FACTION_TABLE,
) -> Deck:
    """
    Return a deck with one more copy of `unit`.

    Raises:
        DeckValidationError: If the add is not allowed (deck unchanged)
    """
    check_add(unit, deck, units_by_id, ownership, enforce_ownership, factions)

    entries = dict(deck.entries)
    entries[unit.id] = entries.get(unit.id, 0) + 1
    return deck.with_entries(entries)


def remove_unit(deck: Deck, unit_id: str) -> Deck:
    """
    Return a deck with one copy of `unit_id` removed.

    An entry reaching zero is deleted. Removing an absent unit is a no-op.
    """
    current = deck.count_of(unit_id)
    if current == 0:
        return deck

    entries = dict(deck.entries)
    if current <= 1:
        del entries[unit_id]
    else:
        entries[unit_id] = current - 1
    return deck.with_entries(entries)


def validate_for_save(
    deck: Deck,
    units_by_id: Mapping[str, Unit],
    factions: FactionTable = DEFAULT_FACTION_TABLE,
) -> None:
    """
    Final whole-deck validation before persisting.

    An empty deck has no faction and passes the faction check.

    Raises:
        PointCapExceededError: Total points over the cap
        FactionRuleViolationError: Deck faction differs from the rule
    """
    points = deck_points(deck, units_by_id)
    if points > deck.point_cap:
        logger.warning(
            "SAVE_VALIDATION_FAILED",
            extra={"reason": "point_cap", "points": points, "point_cap": deck.point_cap},
        )
        raise PointCapExceededError(points, deck.point_cap)

    required = deck.faction_rule.required_faction
    if required is None or deck.is_empty:
        return

    faction = deck_faction(deck, units_by_id, factions)
    if faction is not None and faction is not required:
        logger.warning(
            "SAVE_VALIDATION_FAILED",
            extra={"reason": "faction", "rule": deck.faction_rule.value},
        )
        raise FactionRuleViolationError(deck.faction_rule)
