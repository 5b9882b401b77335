"""Tests for deck API endpoints."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from fleetbuilder.main import app
from fleetbuilder.models.ownership import OwnershipMap
from fleetbuilder.models.state import SessionInfo
from fleetbuilder.models.unit import Unit
from fleetbuilder.services.deck_session import Collaborators, DeckSession
from fleetbuilder.services.transitions import initial_state

NOW = 1_700_000_000_000


@pytest.fixture
def collaborators(catalog: list[Unit]) -> Collaborators:
    return Collaborators(
        fetch_catalog=AsyncMock(return_value=catalog),
        fetch_ownership=AsyncMock(return_value=OwnershipMap()),
        request_magic_link=AsyncMock(return_value=None),
        get_user=AsyncMock(return_value={"id": "user-1"}),
        save_deck=AsyncMock(return_value="42"),
    )


@pytest.fixture
async def deck_session(collaborators: Collaborators, catalog: list[Unit]):
    session = DeckSession(
        collaborators,
        clock=lambda: NOW,
        state=initial_state().evolve(catalog=tuple(catalog)),
    )
    yield session
    await session.close()


@pytest.fixture
async def client(deck_session: DeckSession):
    """Provide an async test client bound to a prepared deck session."""
    app.state.deck_session = deck_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestGetDeck:
    async def test_empty_deck(self, client: AsyncClient) -> None:
        response = await client.get("/deck")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "My Axis 150"
        assert data["point_cap"] == 150
        assert data["faction_rule"] == "axis_only"
        assert data["items"] == []
        assert data["totals"]["points"] == 0
        assert data["totals"]["faction"] is None


class TestAddRemove:
    async def test_add_unit(self, client: AsyncClient) -> None:
        response = await client.post("/deck/units/u-bismarck")

        assert response.status_code == 200
        data = response.json()
        assert data["items"][0]["unit"]["name"] == "Bismarck"
        assert data["items"][0]["count"] == 1
        assert data["totals"]["points"] == 45
        assert data["totals"]["faction"] == "Axis"
        assert data["totals"]["effective_by_range"]["0"] == 10.0

    async def test_rejected_add_returns_envelope(
        self, client: AsyncClient, deck_session: DeckSession
    ) -> None:
        """An Allied unit in an Axis-only deck is refused with 422."""
        await client.post("/deck/units/u-bismarck")

        response = await client.post("/deck/units/u-hood")

        assert response.status_code == 422
        data = response.json()
        assert data["outcome"] == "known_failure"
        assert data["failure"]["kind"] == "faction_rule_violated"
        assert data["failure"]["message"] == "Deck violates Axis-only rule"
        assert "u-hood" not in deck_session.state.deck

    async def test_point_cap_exceeded(self, client: AsyncClient) -> None:
        await client.patch("/deck/settings", json={"point_cap": 50})
        await client.post("/deck/units/u-bismarck")

        response = await client.post("/deck/units/u-u47")

        assert response.status_code == 422
        assert response.json()["failure"]["kind"] == "point_cap_exceeded"

    async def test_unknown_unit(self, client: AsyncClient) -> None:
        response = await client.post("/deck/units/u-missing")

        assert response.status_code == 404
        assert response.json()["failure"]["kind"] == "not_found"

    async def test_remove_unit(self, client: AsyncClient) -> None:
        await client.post("/deck/units/u-u47")
        await client.post("/deck/units/u-u47")

        response = await client.delete("/deck/units/u-u47")

        assert response.json()["items"][0]["count"] == 1

    async def test_remove_absent_unit_is_noop(self, client: AsyncClient) -> None:
        response = await client.delete("/deck/units/u-u47")

        assert response.status_code == 200
        assert response.json()["items"] == []

    async def test_clear(self, client: AsyncClient) -> None:
        await client.post("/deck/units/u-zara")

        response = await client.post("/deck/clear")

        assert response.json()["items"] == []


class TestSettings:
    async def test_update_settings(self, client: AsyncClient) -> None:
        response = await client.patch(
            "/deck/settings",
            json={"name": "Force Z", "point_cap": 200, "faction_rule": "allies_only"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Force Z"
        assert data["point_cap"] == 200
        assert data["faction_rule"] == "allies_only"

    async def test_invalid_point_cap(self, client: AsyncClient) -> None:
        response = await client.patch("/deck/settings", json={"point_cap": 99})

        assert response.status_code == 400
        assert response.json()["failure"]["kind"] == "invalid_input"

    async def test_invalid_faction_rule(self, client: AsyncClient) -> None:
        response = await client.patch("/deck/settings", json={"faction_rule": "neutral"})

        assert response.status_code == 422


class TestRecommend:
    async def test_fills_from_displayed_units(self, client: AsyncClient) -> None:
        await client.patch("/deck/settings", json={"point_cap": 50})

        response = await client.post("/deck/recommend")

        data = response.json()
        assert response.status_code == 200
        assert 0 < data["totals"]["points"] <= 50
        assert data["totals"]["faction"] == "Axis"


class TestFilters:
    async def test_defaults(self, client: AsyncClient) -> None:
        response = await client.get("/deck/filters")

        assert response.json() == {
            "search_text": "",
            "nation": "All",
            "type": "All",
            "owned_only": False,
        }

    async def test_update_and_reset(self, client: AsyncClient) -> None:
        response = await client.patch("/deck/filters", json={"nation": "Italy", "type": "Cruiser"})
        assert response.json()["nation"] == "Italy"

        units = await client.get("/catalog/units")
        assert [u["id"] for u in units.json()["units"]] == ["u-zara"]

        response = await client.delete("/deck/filters")
        assert response.json()["nation"] == "All"
        assert response.json()["type"] == "All"

    async def test_owned_only_requires_sign_in(self, client: AsyncClient) -> None:
        response = await client.patch("/deck/filters", json={"owned_only": True})

        assert response.status_code == 401
        assert response.json()["failure"]["message"] == "Sign in first (magic link)"


class TestSave:
    async def test_anonymous_save(self, client: AsyncClient, collaborators) -> None:
        response = await client.post("/deck/save")

        assert response.status_code == 401
        collaborators.save_deck.assert_not_awaited()

    async def test_save(
        self, client: AsyncClient, deck_session: DeckSession, collaborators
    ) -> None:
        deck_session.state = deck_session.state.evolve(
            session=SessionInfo(access_token="token-1", user_id="user-1")
        )
        await client.post("/deck/units/u-bismarck")

        response = await client.post("/deck/save")

        assert response.status_code == 200
        data = response.json()
        assert data["deck_id"] == "42"
        assert data["deck"]["last_saved_deck_id"] == "42"
        assert data["deck"]["notice"]["ok"] == "Deck saved"
        collaborators.save_deck.assert_awaited_once()

    async def test_save_over_cap(self, client: AsyncClient, deck_session: DeckSession) -> None:
        deck_session.state = deck_session.state.evolve(
            session=SessionInfo(access_token="token-1", user_id="user-1")
        )
        await client.post("/deck/units/u-bismarck")
        await client.post("/deck/units/u-bismarck")
        await client.patch("/deck/settings", json={"point_cap": 80})

        response = await client.post("/deck/save")

        assert response.status_code == 422
        assert response.json()["failure"]["kind"] == "point_cap_exceeded"
