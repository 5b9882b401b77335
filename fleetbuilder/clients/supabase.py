"""
Hosted backend client.

One httpx client covers every external collaborator of the deck core:

- catalog provider: `units` + `unit_stats` tables
- ownership provider: `user_ownership` rows visible to the signed-in identity
- sign-in requester: magic-link endpoint
- user lookup: resolves an access token to an identity
- deck persister: `decks` + `deck_units` tables

Every transport problem (connection error, non-success status, a body that
cannot be decoded) becomes a TransportError with a generic message.
Sign-in failures are normalized into SignInFailure records instead of
raising, so the cooldown logic never sees the wire format.
"""

import logging
from typing import Any

import httpx

from fleetbuilder.config import settings
from fleetbuilder.models.actions import PersistDeck
from fleetbuilder.models.cooldown import SignInFailure
from fleetbuilder.models.failure import TransportError
from fleetbuilder.models.ownership import OwnershipMap
from fleetbuilder.models.unit import Unit
from fleetbuilder.services.catalog import UNIT_COLUMNS, join_catalog

logger = logging.getLogger(__name__)

STATS_PAGE_LIMIT = 10_000


class SupabaseClient:
    """
    Async client for the hosted REST and auth endpoints.

    Usage:
        async with SupabaseClient(url, anon_key) as backend:
            units = await backend.fetch_catalog()
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        redirect_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.redirect_url = redirect_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls) -> "SupabaseClient":
        return cls(
            base_url=settings.supabase_url,
            anon_key=settings.supabase_anon_key,
            redirect_url=settings.magic_link_redirect_url,
            timeout=settings.http_timeout_seconds,
        )

    async def __aenter__(self) -> "SupabaseClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, access_token: str | None = None, **extra: str) -> dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
            "Accept": "application/json",
        }
        headers.update(extra)
        return headers

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        access_token: str | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        url = f"{self.base_url}/{path}"
        try:
            response = await self._client.request(
                method,
                url,
                json=json,
                headers={**self._headers(access_token), **(headers or {})},
            )
        except httpx.HTTPError as e:
            logger.error("HTTP error during %s: %s", operation, e)
            raise TransportError(operation, detail=str(e)) from e

        if response.is_error:
            logger.error(
                "Upstream %s failed with status %d", operation, response.status_code
            )
            raise TransportError(
                operation,
                detail=response.text[:500],
                status=response.status_code,
            )
        return response

    def _json(self, operation: str, response: httpx.Response) -> Any:
        """Decode a success body; a body that is not JSON counts as a transport failure."""
        try:
            return response.json()
        except ValueError as e:
            logger.error("Upstream %s returned a body that is not JSON", operation)
            raise TransportError(operation, detail=response.text[:500]) from e

    # --- catalog provider ---

    async def fetch_catalog(self) -> list[Unit]:
        """
        Fetch every unit joined with its stat row.

        Raises:
            TransportError: If either table cannot be read
        """
        columns = ",".join(UNIT_COLUMNS)
        units = await self._request(
            "load the unit catalog", "GET", f"rest/v1/units?select={columns}"
        )
        stats = await self._request(
            "load the unit catalog",
            "GET",
            f"rest/v1/unit_stats?select=*&limit={STATS_PAGE_LIMIT}",
        )
        catalog = join_catalog(
            self._json("load the unit catalog", units),
            self._json("load the unit catalog", stats),
        )
        logger.info("Fetched %d catalog units", len(catalog))
        return catalog

    # --- ownership provider ---

    async def fetch_ownership(self, access_token: str) -> OwnershipMap:
        """
        Fetch ownership rows visible to the identity behind `access_token`.

        Raises:
            TransportError: If the rows cannot be read
        """
        response = await self._request(
            "load your ownership",
            "GET",
            "rest/v1/user_ownership?select=unit_id,owned,copies",
            access_token=access_token,
        )
        return OwnershipMap.from_rows(self._json("load your ownership", response))

    # --- sign-in requester ---

    async def request_magic_link(self, email: str) -> SignInFailure | None:
        """
        Ask the auth endpoint to email a magic link.

        Returns:
            None on success, otherwise the normalized failure

        Raises:
            TransportError: If the endpoint cannot be reached
        """
        body: dict[str, Any] = {"email": email, "create_user": True}
        if self.redirect_url:
            # Newer auth servers read options.email_redirect_to, older ones redirect_to
            body["options"] = {"email_redirect_to": self.redirect_url}
            body["redirect_to"] = self.redirect_url

        try:
            response = await self._client.post(
                f"{self.base_url}/auth/v1/magiclink",
                json=body,
                headers=self._headers(**{"Content-Type": "application/json"}),
            )
        except httpx.HTTPError as e:
            logger.error("HTTP error requesting magic link: %s", e)
            raise TransportError("send the magic link", detail=str(e)) from e

        if response.is_success:
            return None

        return SignInFailure.from_body(response.status_code, response.text)

    async def get_user(self, access_token: str) -> dict[str, Any] | None:
        """
        Resolve an access token to its user record.

        Returns:
            The user record, or None if the token is not accepted

        Raises:
            TransportError: If the endpoint cannot be reached
        """
        try:
            response = await self._client.get(
                f"{self.base_url}/auth/v1/user",
                headers=self._headers(access_token),
            )
        except httpx.HTTPError as e:
            logger.error("HTTP error looking up user: %s", e)
            raise TransportError("check your sign-in", detail=str(e)) from e

        if not response.is_success:
            return None
        data: dict[str, Any] = self._json("check your sign-in", response)
        return data

    # --- deck persister ---

    async def save_deck(self, request: PersistDeck) -> str:
        """
        Store a finished deck: one `decks` row, then its `deck_units` rows.

        Returns:
            Identifier assigned to the deck row

        Raises:
            TransportError: If either insert fails
        """
        deck = request.deck
        response = await self._request(
            "save the deck",
            "POST",
            "rest/v1/decks",
            access_token=request.access_token,
            json={
                "user_id": request.user_id,
                "name": deck.name,
                "description": request.description,
                "point_cap": deck.point_cap,
                "faction_rule": deck.faction_rule.value,
                "visibility": "private",
            },
            headers={"Content-Type": "application/json", "Prefer": "return=representation"},
        )
        rows = self._json("save the deck", response)
        try:
            deck_id = str(rows[0]["id"])
        except (IndexError, KeyError, TypeError) as e:
            logger.error("Deck insert returned no usable id: %s", response.text[:200])
            raise TransportError("save the deck", detail="deck insert returned no id") from e

        payload = [
            {"deck_id": deck_id, "unit_id": entry.unit_id, "count": entry.count}
            for entry in deck
        ]
        if payload:
            await self._request(
                "save the deck",
                "POST",
                "rest/v1/deck_units",
                access_token=request.access_token,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "Prefer": "resolution=merge-duplicates",
                },
            )

        logger.info("Saved deck %s with %d entries", deck_id, len(payload))
        return deck_id
