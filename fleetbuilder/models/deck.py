"""
Deck — the in-progress collection of unit/count pairs.

INVARIANTS (hold after every sanctioned mutation):
- every count >= 1 (zero-count entries are deleted, never stored)
- count <= applicable copy cap
- sum(count * points) <= point_cap
- under a non-mixed faction rule, every unit belongs to the required faction

The deck is immutable. Mutations return a new Deck; only the constraint
validator (services.deck_validator) produces mutated decks.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from fleetbuilder.config import (
    DEFAULT_DECK_NAME,
    DEFAULT_FACTION_RULE,
    DEFAULT_POINT_CAP,
    POINT_CAPS,
)
from fleetbuilder.models.faction import FactionRule
from fleetbuilder.models.failure import FailureKind, KnownError


@dataclass(frozen=True, slots=True)
class DeckEntry:
    """One unit and how many copies of it the deck holds."""

    unit_id: str
    count: int

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValueError(f"Unit '{self.unit_id}' has invalid count {self.count} (must be >= 1)")


@dataclass(frozen=True)
class Deck:
    """
    Immutable deck: metadata plus unit_id -> count entries.

    Attributes:
        name: Player-chosen deck name
        point_cap: Spending limit, one of POINT_CAPS
        faction_rule: Faction constraint
        entries: unit_id -> count (every count >= 1)
    """

    name: str = DEFAULT_DECK_NAME
    point_cap: int = DEFAULT_POINT_CAP
    faction_rule: FactionRule = FactionRule(DEFAULT_FACTION_RULE)
    entries: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.point_cap not in POINT_CAPS:
            raise ValueError(f"Invalid point cap: {self.point_cap}. Must be one of {POINT_CAPS}")
        for unit_id, count in self.entries.items():
            if count < 1:
                raise ValueError(f"Unit '{unit_id}' has invalid count {count} (must be >= 1)")
        # Freeze entries so no caller can mutate a deck in place
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def __contains__(self, unit_id: str) -> bool:
        return unit_id in self.entries

    def __len__(self) -> int:
        """Number of distinct units in the deck."""
        return len(self.entries)

    def __iter__(self) -> Iterator[DeckEntry]:
        for unit_id, count in self.entries.items():
            yield DeckEntry(unit_id=unit_id, count=count)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def count_of(self, unit_id: str) -> int:
        return self.entries.get(unit_id, 0)

    def with_entries(self, entries: Mapping[str, int]) -> "Deck":
        """Same metadata, new entries."""
        return replace(self, entries=dict(entries))

    def cleared(self) -> "Deck":
        return self.with_entries({})

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "point_cap": self.point_cap,
            "faction_rule": self.faction_rule.value,
            "entries": dict(self.entries),
        }


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class DeckValidationError(KnownError):
    """
    Raised when a deck operation would break a deck invariant.

    Surfaced verbatim to the caller. Never auto-corrected.
    """

    def __init__(
        self,
        message: str,
        kind: FailureKind = FailureKind.VALIDATION_FAILED,
        detail: str | None = None,
        suggestion: str | None = None,
    ):
        super().__init__(
            kind=kind,
            message=message,
            detail=detail,
            suggestion=suggestion,
            status_code=422,
        )


class PointCapExceededError(DeckValidationError):
    def __init__(self, points: int, point_cap: int):
        self.points = points
        self.point_cap = point_cap
        super().__init__(
            "Deck exceeds point cap",
            kind=FailureKind.POINT_CAP_EXCEEDED,
            detail=f"points: {points}/{point_cap}",
            suggestion="Remove units or pick a higher point cap.",
        )


class FactionRuleViolationError(DeckValidationError):
    def __init__(self, rule: FactionRule, nation: str | None = None):
        self.rule = rule
        self.nation = nation
        super().__init__(
            f"Deck violates {rule.label} rule",
            kind=FailureKind.FACTION_RULE_VIOLATED,
            detail=f"nation: {nation}" if nation else None,
            suggestion="Remove units from the other side or switch the rule to Mixed.",
        )


class CopyLimitExceededError(DeckValidationError):
    def __init__(self, unit_id: str, requested: int, limit: int):
        self.unit_id = unit_id
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"Cannot use {requested} copies of '{unit_id}': only {limit} allowed",
            kind=FailureKind.COPY_LIMIT_EXCEEDED,
            detail=f"copies: {requested}/{limit}",
        )


class UnknownUnitError(KnownError):
    """Raised when a unit id is not in the loaded catalog."""

    def __init__(self, unit_id: str):
        self.unit_id = unit_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"Unit '{unit_id}' is not in the catalog",
            status_code=404,
        )
