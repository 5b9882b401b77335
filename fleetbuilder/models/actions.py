"""
Actions and effects.

Actions describe something that happened (a user click, a collaborator
completing). Effects describe collaborator calls or timers the session
runtime must carry out. Both are plain data.
"""

from dataclasses import dataclass

from fleetbuilder.models.cooldown import CooldownTimer, SignInFailure
from fleetbuilder.models.deck import Deck
from fleetbuilder.models.faction import FactionRule
from fleetbuilder.models.ownership import OwnershipMap
from fleetbuilder.models.unit import Unit

# =============================================================================
# USER ACTIONS
# =============================================================================


@dataclass(frozen=True)
class SetSearchText:
    text: str


@dataclass(frozen=True)
class SetNation:
    nation: str


@dataclass(frozen=True)
class SetType:
    type: str


@dataclass(frozen=True)
class ResetFilters:
    pass


@dataclass(frozen=True)
class SetOwnedOnly:
    owned_only: bool


@dataclass(frozen=True)
class SetPointCap:
    point_cap: int


@dataclass(frozen=True)
class SetFactionRule:
    rule: FactionRule


@dataclass(frozen=True)
class RenameDeck:
    name: str


@dataclass(frozen=True)
class AddUnit:
    unit_id: str


@dataclass(frozen=True)
class RemoveUnit:
    unit_id: str


@dataclass(frozen=True)
class ClearDeck:
    pass


@dataclass(frozen=True)
class Recommend:
    pass


@dataclass(frozen=True)
class SaveDeck:
    pass


@dataclass(frozen=True)
class RequestSignIn:
    email: str


@dataclass(frozen=True)
class StartSession:
    """Access token picked up from a magic-link redirect."""

    access_token: str


@dataclass(frozen=True)
class SignOut:
    pass


@dataclass(frozen=True)
class RestoreCooldown:
    """Persisted cooldown deadline re-read at startup."""

    timer: CooldownTimer


# =============================================================================
# COLLABORATOR COMPLETIONS
# =============================================================================


@dataclass(frozen=True)
class CatalogLoaded:
    units: tuple[Unit, ...]


@dataclass(frozen=True)
class UserResolved:
    access_token: str
    user_id: str
    email: str | None = None


@dataclass(frozen=True)
class OwnershipLoaded:
    access_token: str
    ownership: OwnershipMap


@dataclass(frozen=True)
class SignInSucceeded:
    pass


@dataclass(frozen=True)
class SignInFailed:
    failure: SignInFailure


@dataclass(frozen=True)
class SaveSucceeded:
    deck_id: str


@dataclass(frozen=True)
class CollaboratorFailed:
    """A collaborator call failed; `operation` names the state slot affected."""

    operation: str
    message: str


@dataclass(frozen=True)
class CooldownTick:
    remaining: int


Action = (
    SetSearchText
    | SetNation
    | SetType
    | ResetFilters
    | SetOwnedOnly
    | SetPointCap
    | SetFactionRule
    | RenameDeck
    | AddUnit
    | RemoveUnit
    | ClearDeck
    | Recommend
    | SaveDeck
    | RequestSignIn
    | StartSession
    | SignOut
    | RestoreCooldown
    | CatalogLoaded
    | UserResolved
    | OwnershipLoaded
    | SignInSucceeded
    | SignInFailed
    | SaveSucceeded
    | CollaboratorFailed
    | CooldownTick
)


# =============================================================================
# EFFECTS
# =============================================================================


@dataclass(frozen=True)
class LoadCatalog:
    pass


@dataclass(frozen=True)
class LookupUser:
    access_token: str


@dataclass(frozen=True)
class LoadOwnership:
    access_token: str


@dataclass(frozen=True)
class SendMagicLink:
    email: str


@dataclass(frozen=True)
class PersistDeck:
    """Final deck handed to the deck persister."""

    user_id: str
    access_token: str
    deck: Deck
    description: str


@dataclass(frozen=True)
class PersistCooldown:
    timer: CooldownTimer


@dataclass(frozen=True)
class StartCountdown:
    timer: CooldownTimer


@dataclass(frozen=True)
class StopCountdown:
    pass


Effect = (
    LoadCatalog
    | LookupUser
    | LoadOwnership
    | SendMagicLink
    | PersistDeck
    | PersistCooldown
    | StartCountdown
    | StopCountdown
)
