"""
Session runtime.

Owns the current AppState, feeds actions through the pure transition
function and carries out the effects it returns:

- timer effects (persist cooldown, start/stop countdown) run inline
- collaborator effects run as asyncio tasks; when a task finishes its
  completion action is dispatched (last completion wins)

A collaborator failing never corrupts state: the failure becomes a
CollaboratorFailed action and the affected slot keeps its last value.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from dataclasses import dataclass, field
from typing import Any

from fleetbuilder.config import COUNTDOWN_INTERVAL_SECONDS
from fleetbuilder.models.actions import (
    Action,
    CatalogLoaded,
    CollaboratorFailed,
    CooldownTick,
    Effect,
    LoadCatalog,
    LoadOwnership,
    LookupUser,
    OwnershipLoaded,
    PersistCooldown,
    PersistDeck,
    RestoreCooldown,
    SaveSucceeded,
    SendMagicLink,
    SignInFailed,
    SignInSucceeded,
    StartCountdown,
    StopCountdown,
    UserResolved,
)
from fleetbuilder.models.cooldown import SignInFailure
from fleetbuilder.models.faction import DEFAULT_FACTION_TABLE, FactionTable
from fleetbuilder.models.failure import FailureKind, KnownError, TransportError
from fleetbuilder.models.ownership import OwnershipMap
from fleetbuilder.models.state import AppState
from fleetbuilder.models.unit import Unit
from fleetbuilder.services.cooldown import CooldownStore, CountdownTicker, now_ms
from fleetbuilder.services.transitions import Transition, initial_state, transition

logger = logging.getLogger(__name__)

INVALID_SESSION_MESSAGE = "Sign-in link expired or invalid"

# Effect type -> state slot named in CollaboratorFailed
_EFFECT_OPERATIONS: dict[type, str] = {
    LoadCatalog: "catalog",
    LookupUser: "session",
    LoadOwnership: "ownership",
    SendMagicLink: "sign_in",
    PersistDeck: "save",
}

# Effect type -> operation named in the generic failure message
_EFFECT_DESCRIPTIONS: dict[type, str] = {
    LoadCatalog: "load the unit catalog",
    LookupUser: "check your sign-in",
    LoadOwnership: "load your ownership",
    SendMagicLink: "send the magic link",
    PersistDeck: "save the deck",
}


@dataclass
class Collaborators:
    """
    External calls the session depends on.

    Each field is an async callable so tests can pass AsyncMock doubles and
    the app can mix backends (e.g. REST catalog, database persister).
    """

    fetch_catalog: Callable[[], Awaitable[Sequence[Unit]]]
    fetch_ownership: Callable[[str], Awaitable[OwnershipMap]]
    request_magic_link: Callable[[str], Awaitable[SignInFailure | None]]
    get_user: Callable[[str], Awaitable[dict[str, Any] | None]]
    save_deck: Callable[[PersistDeck], Awaitable[str]]


@dataclass
class _Origin:
    """Errors and collaborator tasks caused by one `perform` call."""

    errors: list[KnownError] = field(default_factory=list)
    tasks: set[asyncio.Task[None]] = field(default_factory=set)

    async def wait(self) -> None:
        # Completions can start follow-up calls (session lookup -> ownership)
        while self.tasks:
            await asyncio.gather(*list(self.tasks))


class DeckSession:
    """
    One deckbuilding session.

    Usage:
        session = DeckSession(collaborators, cooldown_store=CooldownStore(path))
        await session.start()
        state = await session.perform(AddUnit("u-1"))
        ...
        await session.close()
    """

    def __init__(
        self,
        collaborators: Collaborators,
        cooldown_store: CooldownStore | None = None,
        factions: FactionTable = DEFAULT_FACTION_TABLE,
        clock: Callable[[], int] = now_ms,
        state: AppState | None = None,
        tick_interval: float = COUNTDOWN_INTERVAL_SECONDS,
    ):
        self.collaborators = collaborators
        self.cooldown_store = cooldown_store
        self.factions = factions
        self.clock = clock
        self.state = state or initial_state()
        self.ticker = CountdownTicker(on_tick=self._on_tick, clock=clock, interval=tick_interval)
        self._tasks: set[asyncio.Task[None]] = set()

    # --- lifecycle ---

    async def start(self) -> AppState:
        """Restore a persisted cooldown, then load the catalog."""
        if self.cooldown_store is not None:
            self.dispatch(RestoreCooldown(timer=self.cooldown_store.load()))
        self._run_effect(LoadCatalog())
        await self.wait_idle()
        return self.state

    async def close(self) -> None:
        """Cancel the countdown and any collaborator calls still in flight."""
        self.ticker.cancel()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def wait_idle(self) -> None:
        """Wait until no collaborator task is running (countdown excluded)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # --- dispatch ---

    def dispatch(self, action: Action, origin: _Origin | None = None) -> Transition:
        """
        Apply an action and schedule its effects. Must run inside an event loop.

        Errors and collaborator tasks are recorded on `origin`, the `perform`
        call the action belongs to, when there is one.
        """
        result = transition(self.state, action, self.clock(), self.factions)
        self.state = result.state
        if result.error is not None and origin is not None:
            origin.errors.append(result.error)
        for effect in result.effects:
            self._run_effect(effect, origin)
        return result

    async def perform(self, action: Action) -> AppState:
        """
        Dispatch an action and wait for the collaborator calls it started.

        Calls started by other, overlapping `perform` calls are not awaited,
        and their errors are not reported here.

        Returns:
            State after every resulting completion was applied

        Raises:
            KnownError: The first error produced by the action or its follow-ups
        """
        origin = _Origin()
        self.dispatch(action, origin)
        await origin.wait()
        if origin.errors:
            raise origin.errors[0]
        return self.state

    def _on_tick(self, remaining: int) -> None:
        self.dispatch(CooldownTick(remaining=remaining))

    # --- effects ---

    def _run_effect(self, effect: Effect, origin: _Origin | None = None) -> None:
        if isinstance(effect, PersistCooldown):
            if self.cooldown_store is not None:
                self.cooldown_store.save(effect.timer)
        elif isinstance(effect, StartCountdown):
            self.ticker.start(effect.timer)
        elif isinstance(effect, StopCountdown):
            self.ticker.cancel()
        else:
            self._spawn(self._complete(effect, origin), origin)

    def _spawn(self, coro: Coroutine[Any, Any, None], origin: _Origin | None) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        if origin is not None:
            origin.tasks.add(task)
            task.add_done_callback(origin.tasks.discard)

    async def _complete(self, effect: Effect, origin: _Origin | None) -> None:
        operation = _EFFECT_OPERATIONS[type(effect)]
        try:
            action = await self._call(effect)
        except KnownError as e:
            logger.error("Collaborator call for %s failed: %s", operation, e.message)
            if origin is not None:
                origin.errors.append(e)
            action = CollaboratorFailed(operation=operation, message=e.message)
        except Exception as e:
            # Unclassified collaborator bug: report it like a transport failure
            logger.exception("Collaborator call for %s raised %s", operation, type(e).__name__)
            error = TransportError(_EFFECT_DESCRIPTIONS[type(effect)], detail=type(e).__name__)
            if origin is not None:
                origin.errors.append(error)
            action = CollaboratorFailed(operation=operation, message=error.message)
        self.dispatch(action, origin)

    async def _call(self, effect: Effect) -> Action:
        """Run one collaborator effect and build its completion action."""
        c = self.collaborators

        if isinstance(effect, LoadCatalog):
            units = await c.fetch_catalog()
            return CatalogLoaded(units=tuple(units))

        if isinstance(effect, LookupUser):
            user = await c.get_user(effect.access_token)
            if not user or not user.get("id"):
                raise KnownError(
                    kind=FailureKind.AUTHENTICATION_REQUIRED,
                    message=INVALID_SESSION_MESSAGE,
                    status_code=401,
                )
            return UserResolved(
                access_token=effect.access_token,
                user_id=str(user["id"]),
                email=user.get("email"),
            )

        if isinstance(effect, LoadOwnership):
            ownership = await c.fetch_ownership(effect.access_token)
            return OwnershipLoaded(access_token=effect.access_token, ownership=ownership)

        if isinstance(effect, SendMagicLink):
            failure = await c.request_magic_link(effect.email)
            if failure is None:
                return SignInSucceeded()
            return SignInFailed(failure=failure)

        if isinstance(effect, PersistDeck):
            deck_id = await c.save_deck(effect)
            return SaveSucceeded(deck_id=deck_id)

        raise TypeError(f"Unsupported effect: {type(effect).__name__}")
