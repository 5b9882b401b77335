"""
Sign-in API endpoints.

Magic-link requests go through the cooldown: while a rate-limit wait is
running the request is refused locally, and a new rate-limit response
restarts the wait from the upstream message.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from fleetbuilder.api.dependencies import get_deck_session
from fleetbuilder.models.actions import RequestSignIn, SignOut, StartSession
from fleetbuilder.services.deck_session import DeckSession

router = APIRouter(prefix="/auth", tags=["auth"])


class MagicLinkRequest(BaseModel):
    email: str = Field(default="", max_length=320)


class SessionRequest(BaseModel):
    access_token: str = Field(min_length=1)


class MessageResponse(BaseModel):
    message: str


class SessionResponse(BaseModel):
    signed_in: bool
    user_id: str | None = None
    email: str | None = None
    owned_units: int = 0


class CooldownResponse(BaseModel):
    state: str
    remaining_seconds: int
    can_request: bool
    until_ms: int


def _session_response(session: DeckSession) -> SessionResponse:
    state = session.state
    if state.session is None:
        return SessionResponse(signed_in=False)
    return SessionResponse(
        signed_in=True,
        user_id=state.session.user_id,
        email=state.session.email,
        owned_units=sum(1 for unit_id in state.ownership if state.ownership.is_owned(unit_id)),
    )


@router.post("/magic-link", response_model=MessageResponse)
async def request_magic_link(
    request: MagicLinkRequest,
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> MessageResponse:
    """
    Email a sign-in link.

    Returns 400 without an email, 429 while a cooldown is running or when
    the upstream throttles the request.
    """
    state = await session.perform(RequestSignIn(email=request.email.strip()))
    return MessageResponse(message=state.notice.ok)


@router.post("/session", response_model=SessionResponse)
async def start_session(
    request: SessionRequest,
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> SessionResponse:
    """
    Sign in with the access token carried by a magic-link redirect.

    Loads the identity's ownership and turns owned-only filtering on.
    Returns 401 if the token is not accepted.
    """
    await session.perform(StartSession(access_token=request.access_token))
    return _session_response(session)


@router.get("/session", response_model=SessionResponse)
async def get_session_info(
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> SessionResponse:
    return _session_response(session)


@router.delete("/session", response_model=SessionResponse)
async def sign_out(
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> SessionResponse:
    await session.perform(SignOut())
    return _session_response(session)


@router.get("/cooldown", response_model=CooldownResponse)
async def get_cooldown(
    session: Annotated[DeckSession, Depends(get_deck_session)],
) -> CooldownResponse:
    """Live countdown, recomputed from the stored deadline."""
    now = session.clock()
    timer = session.state.cooldown
    return CooldownResponse(
        state=timer.state(now).value,
        remaining_seconds=timer.remaining_seconds(now),
        can_request=session.state.can_request_sign_in(now),
        until_ms=timer.until_ms,
    )
