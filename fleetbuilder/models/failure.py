"""
Failure Envelope — Unified Response Classification.

Every outcome the deckbuilder reports to its caller is classified here:

- Success: operation completed
- KnownFailure: the system knows why it failed (validation, rate limit,
  missing session, unreachable collaborator)
- UnknownFailure: the system does not know why it failed

No error in the deck core is fatal. All of them are recoverable by a user
retry, so every failure carries a user-appropriate message and, where one
exists, a suggestion.

AUTHORITY BOUNDARY:
API responses pass through `finalize_response()`.
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """What went wrong, in terms a client can branch on."""

    # Request shape
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"

    # Deck constraint violations
    VALIDATION_FAILED = "validation_failed"
    POINT_CAP_EXCEEDED = "point_cap_exceeded"
    FACTION_RULE_VIOLATED = "faction_rule_violated"
    COPY_LIMIT_EXCEEDED = "copy_limit_exceeded"

    # Sign-in and email throttling
    AUTHENTICATION_REQUIRED = "authentication_required"
    RATE_LIMITED = "rate_limited"

    # Supabase or the database answered badly
    EXTERNAL_API_ERROR = "external_api_error"

    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    SUCCESS = "success"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """The `failure` block of a non-success envelope."""

    kind: FailureKind = Field(..., description="Failure classification")
    message: str = Field(..., description="Short text shown in the deck panel")
    detail: str | None = Field(
        default=None,
        description="Numbers or upstream text behind the message, for logs and power users",
    )
    suggestion: str | None = Field(default=None, description="What the player can do next")


class ApiResponse(BaseModel, Generic[T]):
    """
    Envelope returned by every deck, catalog, auth and saved-deck route.

    Exactly one of `data` and `failure` is set, depending on `outcome`.
    """

    outcome: OutcomeType = Field(..., description="Result classification")
    data: T | None = Field(default=None, description="Payload when the outcome is success")
    failure: FailureDetail | None = Field(
        default=None, description="Explanation when the outcome is a failure"
    )

    @classmethod
    def success(cls, data: T) -> "ApiResponse[T]":
        return cls(outcome=OutcomeType.SUCCESS, data=data)

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ) -> "ApiResponse[Any]":
        """Envelope for a failure whose cause is understood."""
        failure = FailureDetail(kind=kind, message=message, detail=detail, suggestion=suggestion)
        return cls(outcome=OutcomeType.KNOWN_FAILURE, failure=failure)


# =============================================================================
# KNOWN ERRORS
# =============================================================================


class KnownError(Exception):
    """
    An explainable failure raised from the deck core or a collaborator.

    Each subclass fixes its own kind, wording and HTTP status so that the
    exception handler in `main` can turn it into an envelope unchanged.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ApiResponse[Any]:
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


class AuthenticationRequiredError(KnownError):
    """Raised when saving or owned-only filtering is attempted without a session."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(
            kind=FailureKind.AUTHENTICATION_REQUIRED,
            message="Sign in first (magic link)",
            detail=f"{action} requires a signed-in session",
            suggestion="Request a magic link and open it to sign in.",
            status_code=401,
        )


class TransportError(KnownError):
    """
    Raised when Supabase or the deck database is unreachable or rejects a call.

    The player only sees which operation failed. Whatever the upstream sent
    back is kept in `detail`.
    """

    def __init__(self, operation: str, detail: str | None = None, status: int | None = None):
        self.operation = operation
        self.upstream_status = status
        super().__init__(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message=f"Could not {operation}. Please try again.",
            detail=detail,
            suggestion="Check your connection and retry.",
            status_code=502,
        )


# =============================================================================
# FAILURE AUTHORITY BOUNDARY
# =============================================================================

STANDARD_MESSAGES: dict[OutcomeType, str] = {
    OutcomeType.KNOWN_FAILURE: "The deck request could not be completed.",
    OutcomeType.UNKNOWN_FAILURE: (
        "Something broke and I don't know why. Your deck is unchanged; try again."
    ),
}

STANDARD_SUGGESTIONS: dict[OutcomeType, str] = {
    OutcomeType.KNOWN_FAILURE: "Read the failure detail and adjust the deck or filters.",
    OutcomeType.UNKNOWN_FAILURE: "Reload the page. If it keeps happening, report it.",
}

# ids of envelopes that went through finalize_response
_finalized_responses: set[int] = set()


def finalize_response(response: ApiResponse[Any]) -> ApiResponse[Any]:
    """
    Check that `failure` is present exactly when the outcome is not success,
    then mark the envelope as finalized.

    Raises:
        ValueError: If the envelope is inconsistent
    """
    has_failure = response.failure is not None
    if response.outcome == OutcomeType.SUCCESS and has_failure:
        raise ValueError("Success response must not have failure details")
    if response.outcome != OutcomeType.SUCCESS and not has_failure:
        raise ValueError(f"{response.outcome.value} response must have failure details")

    _finalized_responses.add(id(response))
    return response


def is_finalized(response: ApiResponse[Any]) -> bool:
    return id(response) in _finalized_responses


def create_unknown_failure(exception: Exception) -> ApiResponse[Any]:
    """
    Finalized envelope for an unclassified exception.

    The exception text may hold credentials or SQL, so only its type name
    is reported.
    """
    failure = FailureDetail(
        kind=FailureKind.UNKNOWN,
        message=STANDARD_MESSAGES[OutcomeType.UNKNOWN_FAILURE],
        detail=type(exception).__name__,
        suggestion=STANDARD_SUGGESTIONS[OutcomeType.UNKNOWN_FAILURE],
    )
    return finalize_response(ApiResponse(outcome=OutcomeType.UNKNOWN_FAILURE, failure=failure))


def create_known_failure(error: KnownError) -> ApiResponse[Any]:
    return finalize_response(error.to_response())


def create_success(data: T) -> ApiResponse[T]:
    return finalize_response(ApiResponse[T](outcome=OutcomeType.SUCCESS, data=data))
