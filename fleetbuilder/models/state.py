"""
Application state for one deckbuilding session.

A single immutable value holding everything the presentation layer shows:
catalog, ownership, signed-in identity, filter controls, the deck, the
sign-in cooldown and the latest notice. Every user action produces a new
AppState through services.transitions.
"""

from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Any

from fleetbuilder.filtering.catalog_filter import CatalogFilters
from fleetbuilder.models.cooldown import CooldownTimer
from fleetbuilder.models.deck import Deck
from fleetbuilder.models.ownership import OwnershipMap
from fleetbuilder.models.unit import Unit


@dataclass(frozen=True, slots=True)
class SessionInfo:
    """A signed-in identity."""

    access_token: str
    user_id: str
    email: str | None = None


@dataclass(frozen=True, slots=True)
class Notice:
    """Latest user-facing error or success message."""

    error: str = ""
    ok: str = ""

    @classmethod
    def failure(cls, message: str) -> "Notice":
        return cls(error=message)

    @classmethod
    def success(cls, message: str) -> "Notice":
        return cls(ok=message)


@dataclass(frozen=True)
class AppState:
    """
    Immutable session state.

    Attributes:
        catalog: Full unit catalog, in provider order
        ownership: Ownership of the signed-in identity (empty when anonymous)
        session: Signed-in identity, or None
        filters: Search, nation, type and owned-only controls. The faction rule
            lives on the deck; see active_filters.
        deck: Deck under construction
        cooldown: Sign-in cooldown deadline
        countdown: Last computed countdown value in seconds
        notice: Latest user-facing message
        saving: A save request is in flight
        last_saved_deck_id: Identifier assigned by the last successful save
    """

    catalog: tuple[Unit, ...] = ()
    ownership: OwnershipMap = field(default_factory=OwnershipMap)
    session: SessionInfo | None = None
    filters: CatalogFilters = field(default_factory=CatalogFilters)
    deck: Deck = field(default_factory=Deck)
    cooldown: CooldownTimer = field(default_factory=CooldownTimer)
    countdown: int = 0
    notice: Notice = field(default_factory=Notice)
    saving: bool = False
    last_saved_deck_id: str | None = None

    @cached_property
    def units_by_id(self) -> dict[str, Unit]:
        index: dict[str, Unit] = {}
        for unit in self.catalog:
            index.setdefault(unit.id, unit)
        return index

    @property
    def signed_in(self) -> bool:
        return self.session is not None

    @property
    def enforce_ownership(self) -> bool:
        """Owned-only mode is only in force for a signed-in identity."""
        return self.filters.owned_only and self.signed_in

    @property
    def active_filters(self) -> CatalogFilters:
        """Filter controls with the deck's faction rule and effective owned-only flag."""
        return replace(
            self.filters,
            faction_rule=self.deck.faction_rule,
            owned_only=self.enforce_ownership,
        )

    def can_request_sign_in(self, now_ms: int) -> bool:
        """Reads the stored deadline; `countdown` only moves on ticks."""
        return self.cooldown.can_request(now_ms)

    def evolve(self, **changes: Any) -> "AppState":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable snapshot (catalog omitted; it is reloaded per session)."""
        return {
            "ownership": self.ownership.to_dict(),
            "session": (
                {"user_id": self.session.user_id, "email": self.session.email}
                if self.session
                else None
            ),
            "filters": {
                "search_text": self.filters.search_text,
                "nation": self.filters.nation,
                "type": self.filters.type,
                "owned_only": self.filters.owned_only,
            },
            "deck": self.deck.to_dict(),
            "cooldown_until_ms": self.cooldown.until_ms,
            "countdown": self.countdown,
            "notice": {"error": self.notice.error, "ok": self.notice.ok},
            "saving": self.saving,
            "last_saved_deck_id": self.last_saved_deck_id,
        }
