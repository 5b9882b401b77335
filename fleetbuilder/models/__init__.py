from fleetbuilder.models.cooldown import (
    CooldownActiveError,
    CooldownState,
    CooldownTimer,
    RateLimitError,
    SignInError,
    SignInFailure,
)
from fleetbuilder.models.deck import (
    CopyLimitExceededError,
    Deck,
    DeckEntry,
    DeckValidationError,
    FactionRuleViolationError,
    PointCapExceededError,
    UnknownUnitError,
)
from fleetbuilder.models.faction import (
    DEFAULT_FACTION_TABLE,
    Faction,
    FactionRule,
    FactionTable,
)
from fleetbuilder.models.failure import (
    STANDARD_MESSAGES,
    STANDARD_SUGGESTIONS,
    ApiResponse,
    AuthenticationRequiredError,
    FailureDetail,
    FailureKind,
    KnownError,
    OutcomeType,
    TransportError,
    create_known_failure,
    create_success,
    create_unknown_failure,
    finalize_response,
    is_finalized,
)
from fleetbuilder.models.ownership import OwnershipMap, OwnershipRecord
from fleetbuilder.models.unit import Unit

__all__ = [
    # Cooldown
    "CooldownActiveError",
    "CooldownState",
    "CooldownTimer",
    "RateLimitError",
    "SignInError",
    "SignInFailure",
    # Deck
    "CopyLimitExceededError",
    "Deck",
    "DeckEntry",
    "DeckValidationError",
    "FactionRuleViolationError",
    "PointCapExceededError",
    "UnknownUnitError",
    # Faction
    "DEFAULT_FACTION_TABLE",
    "Faction",
    "FactionRule",
    "FactionTable",
    # Failure envelope
    "STANDARD_MESSAGES",
    "STANDARD_SUGGESTIONS",
    "ApiResponse",
    "AuthenticationRequiredError",
    "FailureDetail",
    "FailureKind",
    "KnownError",
    "OutcomeType",
    "TransportError",
    "create_known_failure",
    "create_success",
    "create_unknown_failure",
    "finalize_response",
    "is_finalized",
    # Ownership
    "OwnershipMap",
    "OwnershipRecord",
    # Unit
    "Unit",
]
