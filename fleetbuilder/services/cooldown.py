"""
Sign-in cooldown service.

Turns rate-limit failures into cooldown deadlines, persists the deadline so
a restart mid-cooldown still blocks sign-in, and drives the once-per-second
countdown.

Transitions:
- Idle -> Waiting(until): rate-limited failure, until = now + wait * 1000
- Waiting -> Waiting(until'): newer rate-limited failure overwrites until
- Waiting -> Idle: now >= until (countdown reads 0, until may stay stored)
"""

import asyncio
import json
import logging
import re
import time
from collections.abc import Callable
from pathlib import Path

from fleetbuilder.config import COUNTDOWN_INTERVAL_SECONDS, FALLBACK_WAIT_SECONDS
from fleetbuilder.models.cooldown import CooldownTimer, SignInFailure

logger = logging.getLogger(__name__)

# "after 54 seconds", "54s", "54 secs"
_SECONDS_PATTERN = re.compile(r"(\d+)\s*(?:seconds?|secs?|s)\b", re.IGNORECASE)
# "1 minute", "2 mins", "5m"
_MINUTES_PATTERN = re.compile(r"(\d+)\s*(?:minutes?|mins?|m)\b", re.IGNORECASE)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def parse_wait_seconds(message: str | None) -> int | None:
    """
    Extract a wait duration from a rate-limit message.

    Seconds are tried first, then minutes (converted x60).

    Returns:
        Seconds to wait, or None if the message names no duration
    """
    if not message or not isinstance(message, str):
        return None

    match = _SECONDS_PATTERN.search(message)
    if match:
        return int(match.group(1))

    match = _MINUTES_PATTERN.search(message)
    if match:
        return int(match.group(1)) * 60

    return None


def wait_seconds_from_message(
    message: str | None,
    fallback: int = FALLBACK_WAIT_SECONDS,
) -> int:
    """Wait duration from a message, or `fallback` when none can be parsed."""
    parsed = parse_wait_seconds(message)
    return fallback if parsed is None else parsed


def apply_rate_limit(
    timer: CooldownTimer,
    failure: SignInFailure,
    now: int,
    fallback: int = FALLBACK_WAIT_SECONDS,
) -> tuple[CooldownTimer, int]:
    """
    Enter Waiting after a rate-limited sign-in failure.

    The previous deadline is discarded (last write wins, no additive backoff).

    Returns:
        Tuple of (new timer, wait seconds)
    """
    wait = wait_seconds_from_message(failure.message, fallback)
    new_timer = timer.wait(wait, now)
    logger.warning(
        "SIGN_IN_RATE_LIMITED",
        extra={
            "status_code": failure.status_code,
            "error_code": failure.error_code,
            "wait_seconds": wait,
            "until_ms": new_timer.until_ms,
        },
    )
    return new_timer, wait


# =============================================================================
# PERSISTENCE
# =============================================================================


class CooldownStore:
    """
    JSON file holding the cooldown deadline.

    File format: {"until_ms": <int>}. A missing or unreadable file means no
    cooldown.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> CooldownTimer:
        if not self.path.exists():
            return CooldownTimer()

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            until = int(data.get("until_ms", 0))
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Ignoring unreadable cooldown state at %s: %s", self.path, e)
            return CooldownTimer()

        timer = CooldownTimer(until_ms=max(0, until))
        logger.info("COOLDOWN_RESTORED", extra={"until_ms": timer.until_ms})
        return timer

    def save(self, timer: CooldownTimer) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"until_ms": timer.until_ms}, f)


# =============================================================================
# COUNTDOWN TICKER
# =============================================================================


class CountdownTicker:
    """
    Recomputes the countdown once per interval while a cooldown is running.

    The ticker is an explicit task handle: start() when entering Waiting,
    cancel() when the owning session ends. It stops itself once the
    countdown reaches zero.

    Usage:
        ticker = CountdownTicker(on_tick=lambda left: print(left))
        ticker.start(timer)
        ...
        ticker.cancel()
    """

    def __init__(
        self,
        on_tick: Callable[[int], None],
        clock: Callable[[], int] = now_ms,
        interval: float = COUNTDOWN_INTERVAL_SECONDS,
    ):
        self.on_tick = on_tick
        self.clock = clock
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, timer: CooldownTimer) -> None:
        """
        Start ticking toward the timer's deadline.

        Restarting replaces any previous run. An inert timer emits a single
        zero tick and schedules nothing.
        """
        self.cancel()

        remaining = timer.remaining_seconds(self.clock())
        if remaining == 0:
            self.on_tick(0)
            return

        self._task = asyncio.get_running_loop().create_task(self._run(timer))

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, timer: CooldownTimer) -> None:
        while True:
            remaining = timer.remaining_seconds(self.clock())
            self.on_tick(remaining)
            if remaining == 0:
                return
            await asyncio.sleep(self.interval)
