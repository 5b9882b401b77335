"""Tests for sign-in API endpoints."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from fleetbuilder.main import app
from fleetbuilder.models.cooldown import RATE_LIMIT_ERROR_CODE, SignInFailure
from fleetbuilder.models.ownership import OwnershipMap, OwnershipRecord
from fleetbuilder.models.unit import Unit
from fleetbuilder.services.deck_session import Collaborators, DeckSession
from fleetbuilder.services.transitions import initial_state

NOW = 1_700_000_000_000


@pytest.fixture
def collaborators(catalog: list[Unit]) -> Collaborators:
    return Collaborators(
        fetch_catalog=AsyncMock(return_value=catalog),
        fetch_ownership=AsyncMock(
            return_value=OwnershipMap.from_records(
                [
                    OwnershipRecord("u-bismarck", owned=True, copies=1),
                    OwnershipRecord("u-zara", owned=False, copies=0),
                ]
            )
        ),
        request_magic_link=AsyncMock(return_value=None),
        get_user=AsyncMock(return_value={"id": "user-1", "email": "raeder@example.com"}),
        save_deck=AsyncMock(return_value="1"),
    )


@pytest.fixture
async def client(collaborators: Collaborators, catalog: list[Unit]):
    """Provide an async test client bound to a fresh deck session."""
    session = DeckSession(
        collaborators,
        clock=lambda: NOW,
        state=initial_state().evolve(catalog=tuple(catalog)),
        tick_interval=60,
    )
    app.state.deck_session = session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    await session.close()


class TestMagicLink:
    async def test_sends_link(self, client: AsyncClient, collaborators) -> None:
        response = await client.post("/auth/magic-link", json={"email": " raeder@example.com "})

        assert response.status_code == 200
        assert response.json()["message"] == "Magic link sent. Check your email."
        collaborators.request_magic_link.assert_awaited_once_with("raeder@example.com")

    async def test_email_required(self, client: AsyncClient, collaborators) -> None:
        response = await client.post("/auth/magic-link", json={"email": ""})

        assert response.status_code == 400
        assert response.json()["failure"]["message"] == "Enter an email first"
        collaborators.request_magic_link.assert_not_awaited()

    async def test_rate_limited_then_cooldown(self, client: AsyncClient, collaborators) -> None:
        collaborators.request_magic_link.return_value = SignInFailure(
            status_code=429,
            error_code=RATE_LIMIT_ERROR_CODE,
            message="For security purposes, you can only request this after 54 seconds.",
        )

        response = await client.post("/auth/magic-link", json={"email": "raeder@example.com"})

        assert response.status_code == 429
        assert response.json()["failure"]["message"] == "Too many requests. Try again in 54s."

        cooldown = (await client.get("/auth/cooldown")).json()
        assert cooldown == {
            "state": "waiting",
            "remaining_seconds": 54,
            "can_request": False,
            "until_ms": NOW + 54_000,
        }

        retry = await client.post("/auth/magic-link", json={"email": "raeder@example.com"})
        assert retry.status_code == 429
        assert collaborators.request_magic_link.await_count == 1

    async def test_other_failure(self, client: AsyncClient, collaborators) -> None:
        collaborators.request_magic_link.return_value = SignInFailure(
            status_code=422, message="Unable to validate email address: invalid format"
        )

        response = await client.post("/auth/magic-link", json={"email": "nope"})

        assert response.status_code == 400
        assert response.json()["failure"]["kind"] == "external_api_error"
        cooldown = (await client.get("/auth/cooldown")).json()
        assert cooldown["state"] == "idle"


class TestSession:
    async def test_anonymous(self, client: AsyncClient) -> None:
        response = await client.get("/auth/session")

        assert response.json() == {
            "signed_in": False,
            "user_id": None,
            "email": None,
            "owned_units": 0,
        }

    async def test_sign_in_with_token(self, client: AsyncClient) -> None:
        response = await client.post("/auth/session", json={"access_token": "token-1"})

        assert response.status_code == 200
        data = response.json()
        assert data["signed_in"] is True
        assert data["user_id"] == "user-1"
        assert data["email"] == "raeder@example.com"
        assert data["owned_units"] == 1

        filters = (await client.get("/deck/filters")).json()
        assert filters["owned_only"] is True

    async def test_invalid_token(self, client: AsyncClient, collaborators) -> None:
        collaborators.get_user.return_value = None

        response = await client.post("/auth/session", json={"access_token": "expired"})

        assert response.status_code == 401
        assert response.json()["failure"]["message"] == "Sign-in link expired or invalid"

    async def test_empty_token_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/auth/session", json={"access_token": ""})

        assert response.status_code == 422

    async def test_sign_out(self, client: AsyncClient) -> None:
        await client.post("/auth/session", json={"access_token": "token-1"})

        response = await client.delete("/auth/session")

        assert response.json()["signed_in"] is False
        filters = (await client.get("/deck/filters")).json()
        assert filters["owned_only"] is False
