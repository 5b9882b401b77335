"""
Tests for the failure envelope.

Every failure the API reports is classified and explained. Known errors
keep their own status code; anything unclassified becomes a standard
unknown failure that never leaks the exception message.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from fleetbuilder.main import app
from fleetbuilder.models.cooldown import CooldownActiveError, RateLimitError
from fleetbuilder.models.deck import (
    CopyLimitExceededError,
    FactionRuleViolationError,
    PointCapExceededError,
    UnknownUnitError,
)
from fleetbuilder.models.faction import FactionRule
from fleetbuilder.models.failure import (
    STANDARD_MESSAGES,
    ApiResponse,
    AuthenticationRequiredError,
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


class TestFailureEnvelope:
    def test_success_response_structure(self) -> None:
        response = ApiResponse.success({"points": 45})

        assert response.outcome == OutcomeType.SUCCESS
        assert response.data == {"points": 45}
        assert response.failure is None

    def test_known_failure_response_structure(self) -> None:
        response = ApiResponse.known_failure(
            kind=FailureKind.NOT_FOUND,
            message="Unit 'u-1' is not in the catalog",
        )

        assert response.outcome == OutcomeType.KNOWN_FAILURE
        assert response.data is None
        assert response.failure is not None
        assert response.failure.kind == FailureKind.NOT_FOUND

    def test_known_error_converts_to_response(self) -> None:
        error = PointCapExceededError(points=160, point_cap=150)

        response = error.to_response()

        assert response.failure is not None
        assert response.failure.kind == FailureKind.POINT_CAP_EXCEEDED
        assert response.failure.detail == "points: 160/150"
        assert response.failure.suggestion is not None


class TestStatusCodes:
    @pytest.mark.parametrize(
        "error,status",
        [
            (PointCapExceededError(points=90, point_cap=80), 422),
            (FactionRuleViolationError(FactionRule.AXIS_ONLY, "USA"), 422),
            (CopyLimitExceededError("u-1", requested=4, limit=3), 422),
            (UnknownUnitError("u-1"), 404),
            (AuthenticationRequiredError("Saving a deck"), 401),
            (RateLimitError(54), 429),
            (CooldownActiveError(12), 429),
            (TransportError("save the deck"), 502),
        ],
    )
    def test_known_errors_carry_status(self, error: KnownError, status: int) -> None:
        assert error.status_code == status

    def test_transport_error_hides_upstream_body(self) -> None:
        error = TransportError("save the deck", detail="permission denied for table decks")

        assert "permission denied" not in error.message
        assert error.detail == "permission denied for table decks"


class TestAuthorityBoundary:
    def test_factories_finalize(self) -> None:
        assert is_finalized(create_success({"ok": True}))
        assert is_finalized(create_known_failure(UnknownUnitError("u-1")))
        assert is_finalized(create_unknown_failure(RuntimeError("boom")))

    def test_unfinalized_response_not_marked(self) -> None:
        assert not is_finalized(ApiResponse.success({}))

    def test_success_with_failure_raises(self) -> None:
        response = ApiResponse.known_failure(kind=FailureKind.UNKNOWN, message="x")
        response.outcome = OutcomeType.SUCCESS

        with pytest.raises(ValueError):
            finalize_response(response)

    def test_unknown_failure_detail_is_type_only(self) -> None:
        response = create_unknown_failure(RuntimeError("secret connection string"))

        assert response.failure is not None
        assert response.failure.message == STANDARD_MESSAGES[OutcomeType.UNKNOWN_FAILURE]
        assert response.failure.detail == "RuntimeError"


class TestExceptionHandlers:
    async def test_known_error_uses_its_status(self) -> None:
        class BrokenSession:
            @property
            def state(self):
                raise AuthenticationRequiredError("Reading the deck")

        app.state.deck_session = BrokenSession()

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/deck")

        assert response.status_code == 401
        assert response.json()["outcome"] == "known_failure"

    async def test_unexpected_error_returns_classified_500(self) -> None:
        """An unclassified error still returns the envelope, not a raw crash."""
        app.state.deck_session = object()

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/deck")

        assert response.status_code == 500
        data = response.json()
        assert data["outcome"] == "unknown_failure"
        assert "don't know why" in data["failure"]["message"]
        assert data["failure"]["detail"] == "AttributeError"
