"""
Sign-in cooldown state.

The upstream sign-in endpoint rate-limits magic-link requests. The cooldown
timer remembers the instant after which another request is allowed.

States:
- Idle: no active cooldown (until <= now)
- Waiting(until): requests refused until `until`

INVARIANTS:
- until is never negative
- a newer rate-limit response always overwrites until (last write wins)
- once now >= until the timer is inert; until is not required to be cleared
"""

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fleetbuilder.models.failure import FailureKind, KnownError

RATE_LIMIT_STATUS = 429
RATE_LIMIT_ERROR_CODE = "over_email_send_rate_limit"


class CooldownState(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"


@dataclass(frozen=True, slots=True)
class SignInFailure:
    """
    Normalized failure from the sign-in collaborator.

    Attributes:
        status_code: HTTP status of the failed request
        error_code: Machine-readable marker (e.g. "over_email_send_rate_limit")
        message: Human-readable message; may carry the wait duration
    """

    status_code: int
    error_code: str | None = None
    message: str = ""

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == RATE_LIMIT_STATUS or self.error_code == RATE_LIMIT_ERROR_CODE

    @classmethod
    def from_payload(cls, status_code: int, payload: Mapping[str, Any]) -> "SignInFailure":
        """Normalize a decoded JSON error body."""
        message = (
            payload.get("msg")
            or payload.get("message")
            or payload.get("error_description")
            or "Sign-in failed"
        )
        error_code = payload.get("error_code")
        return cls(
            status_code=status_code,
            error_code=str(error_code) if error_code else None,
            message=str(message),
        )

    @classmethod
    def from_body(cls, status_code: int, body: str) -> "SignInFailure":
        """Normalize a raw response body, JSON or not."""
        try:
            payload = json.loads(body) if body else {}
        except json.JSONDecodeError:
            payload = {"msg": body}
        if not isinstance(payload, dict):
            payload = {"msg": body}
        return cls.from_payload(status_code, payload)


@dataclass(frozen=True, slots=True)
class CooldownTimer:
    """
    Absolute deadline (epoch milliseconds) for the next sign-in request.

    Created at zero: no cooldown.
    """

    until_ms: int = 0

    def __post_init__(self) -> None:
        if self.until_ms < 0:
            raise ValueError(f"Invalid cooldown deadline {self.until_ms} (must be >= 0)")

    def remaining_seconds(self, now_ms: int) -> int:
        """Countdown value: max(0, ceil((until - now) / 1000))."""
        return max(0, math.ceil((self.until_ms - now_ms) / 1000))

    def state(self, now_ms: int) -> CooldownState:
        if self.until_ms > now_ms:
            return CooldownState.WAITING
        return CooldownState.IDLE

    def can_request(self, now_ms: int) -> bool:
        return self.remaining_seconds(now_ms) == 0

    def wait(self, seconds: int, now_ms: int) -> "CooldownTimer":
        """Enter (or re-enter) Waiting with a deadline `seconds` from now."""
        return CooldownTimer(until_ms=max(0, now_ms + seconds * 1000))


class RateLimitError(KnownError):
    """
    Raised when sign-in requests are throttled.

    The user sees a friendly countdown message, never the raw payload.
    """

    def __init__(self, wait_seconds: int):
        self.wait_seconds = wait_seconds
        super().__init__(
            kind=FailureKind.RATE_LIMITED,
            message=f"Too many requests. Try again in {wait_seconds}s.",
            detail=f"cooldown: {wait_seconds}s",
            suggestion="Wait for the countdown to finish before requesting another link.",
            status_code=429,
        )


class CooldownActiveError(KnownError):
    """Raised when a request is attempted while the local cooldown is running."""

    def __init__(self, remaining_seconds: int):
        self.remaining_seconds = remaining_seconds
        super().__init__(
            kind=FailureKind.RATE_LIMITED,
            message=f"Please wait {remaining_seconds}s before requesting another link.",
            status_code=429,
        )


class SignInError(KnownError):
    """Raised for sign-in failures other than rate limiting."""

    def __init__(self, failure: SignInFailure):
        self.failure = failure
        super().__init__(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message=failure.message or "Sign-in failed",
            detail=f"status: {failure.status_code}",
            status_code=400,
        )
