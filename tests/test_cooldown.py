"""Tests for the sign-in cooldown timer."""

import asyncio
import json
from pathlib import Path

import pytest

from fleetbuilder.models.cooldown import (
    RATE_LIMIT_ERROR_CODE,
    CooldownState,
    CooldownTimer,
    SignInFailure,
)
from fleetbuilder.services.cooldown import (
    CooldownStore,
    CountdownTicker,
    apply_rate_limit,
    parse_wait_seconds,
    wait_seconds_from_message,
)

NOW = 1_700_000_000_000


class TestWaitParsing:
    @pytest.mark.parametrize(
        "message,expected",
        [
            ("For security purposes, you can only request this after 54 seconds.", 54),
            ("you can only request this after 1 minute.", 60),
            ("Try again in 2 minutes", 120),
            ("retry after 30s", 30),
            ("wait 5 secs", 5),
            ("AFTER 12 SECONDS", 12),
        ],
    )
    def test_parses_duration(self, message: str, expected: int) -> None:
        assert parse_wait_seconds(message) == expected

    def test_seconds_win_over_minutes(self) -> None:
        assert parse_wait_seconds("1 minute or 45 seconds") == 45

    @pytest.mark.parametrize("message", ["", None, "Email rate limit exceeded", "after 3 days"])
    def test_unparseable_returns_none(self, message: str | None) -> None:
        assert parse_wait_seconds(message) is None

    @pytest.mark.parametrize("message", ["", None, "rate limited"])
    def test_fallback_is_sixty(self, message: str | None) -> None:
        assert wait_seconds_from_message(message) == 60

    def test_custom_fallback(self) -> None:
        assert wait_seconds_from_message("slow down", fallback=15) == 15


class TestSignInFailure:
    def test_rate_limited_by_status(self) -> None:
        assert SignInFailure(status_code=429).is_rate_limited

    def test_rate_limited_by_error_code(self) -> None:
        failure = SignInFailure(status_code=400, error_code=RATE_LIMIT_ERROR_CODE)

        assert failure.is_rate_limited

    def test_other_failure_not_rate_limited(self) -> None:
        assert not SignInFailure(status_code=400, message="Invalid email").is_rate_limited

    def test_from_body_reads_msg(self) -> None:
        body = json.dumps({"code": 429, "error_code": "over_email_send_rate_limit", "msg": "x"})

        failure = SignInFailure.from_body(429, body)

        assert failure.error_code == RATE_LIMIT_ERROR_CODE
        assert failure.message == "x"

    def test_from_body_falls_back_to_other_keys(self) -> None:
        assert SignInFailure.from_body(400, '{"message": "m"}').message == "m"
        assert SignInFailure.from_body(400, '{"error_description": "d"}').message == "d"
        assert SignInFailure.from_body(400, "{}").message == "Sign-in failed"

    def test_from_body_non_json(self) -> None:
        failure = SignInFailure.from_body(502, "Bad Gateway")

        assert failure.message == "Bad Gateway"
        assert failure.error_code is None


class TestCooldownTimer:
    def test_starts_idle(self) -> None:
        timer = CooldownTimer()

        assert timer.remaining_seconds(NOW) == 0
        assert timer.state(NOW) is CooldownState.IDLE
        assert timer.can_request(NOW)

    def test_countdown_rounds_up(self) -> None:
        timer = CooldownTimer(until_ms=NOW + 1500)

        assert timer.remaining_seconds(NOW) == 2
        assert timer.remaining_seconds(NOW + 1000) == 1
        assert timer.remaining_seconds(NOW + 1500) == 0

    def test_negative_deadline_rejected(self) -> None:
        with pytest.raises(ValueError):
            CooldownTimer(until_ms=-1)


class TestApplyRateLimit:
    def test_54_second_scenario(self, tmp_path: Path) -> None:
        """Waiting for 54s, idle after 54s, and still ~24s left after a reload at 30s."""
        failure = SignInFailure(status_code=429, message="after 54 seconds.")

        timer, wait = apply_rate_limit(CooldownTimer(), failure, NOW)

        assert wait == 54
        assert timer.until_ms == NOW + 54_000
        assert timer.state(NOW) is CooldownState.WAITING
        assert timer.remaining_seconds(NOW) == 54
        assert timer.remaining_seconds(NOW + 54_000) == 0
        assert timer.can_request(NOW + 54_000)

        store = CooldownStore(tmp_path / "cooldown.json")
        store.save(timer)
        reloaded = store.load()

        assert reloaded.remaining_seconds(NOW + 30_000) == 24

    def test_newer_failure_overwrites_deadline(self) -> None:
        first, _ = apply_rate_limit(
            CooldownTimer(), SignInFailure(status_code=429, message="after 54 seconds"), NOW
        )

        second, wait = apply_rate_limit(
            first, SignInFailure(status_code=429, message="after 10 seconds"), NOW + 1000
        )

        assert wait == 10
        assert second.until_ms == NOW + 11_000

    def test_unparseable_message_uses_fallback(self) -> None:
        timer, wait = apply_rate_limit(
            CooldownTimer(), SignInFailure(status_code=429, message="rate limited"), NOW
        )

        assert wait == 60
        assert timer.remaining_seconds(NOW) == 60


class TestCooldownStore:
    def test_missing_file_means_no_cooldown(self, tmp_path: Path) -> None:
        assert CooldownStore(tmp_path / "missing.json").load() == CooldownTimer()

    def test_corrupt_file_means_no_cooldown(self, tmp_path: Path) -> None:
        path = tmp_path / "cooldown.json"
        path.write_text("{not json")

        assert CooldownStore(path).load() == CooldownTimer()

    def test_wrong_shape_means_no_cooldown(self, tmp_path: Path) -> None:
        path = tmp_path / "cooldown.json"
        path.write_text("[1, 2, 3]")

        assert CooldownStore(path).load() == CooldownTimer()

    def test_save_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "state" / "cooldown.json"

        CooldownStore(path).save(CooldownTimer(until_ms=NOW))

        assert json.loads(path.read_text()) == {"until_ms": NOW}


class TestCountdownTicker:
    async def test_ticks_down_to_zero_then_stops(self) -> None:
        now = [NOW]
        ticks: list[int] = []

        def on_tick(remaining: int) -> None:
            ticks.append(remaining)
            now[0] += 1000

        ticker = CountdownTicker(on_tick, clock=lambda: now[0], interval=0)
        ticker.start(CooldownTimer(until_ms=NOW + 3000))

        while ticker.running:
            await asyncio.sleep(0)

        assert ticks == [3, 2, 1, 0]

    async def test_inert_timer_emits_single_zero(self) -> None:
        ticks: list[int] = []
        ticker = CountdownTicker(ticks.append, clock=lambda: NOW, interval=0)

        ticker.start(CooldownTimer(until_ms=NOW - 5000))

        assert ticks == [0]
        assert not ticker.running

    async def test_cancel_stops_ticking(self) -> None:
        ticks: list[int] = []
        ticker = CountdownTicker(ticks.append, clock=lambda: NOW, interval=10)

        ticker.start(CooldownTimer(until_ms=NOW + 60_000))
        await asyncio.sleep(0)
        ticker.cancel()
        await asyncio.sleep(0)

        assert not ticker.running
        assert ticks == [60]

    async def test_restart_replaces_previous_run(self) -> None:
        ticks: list[int] = []
        ticker = CountdownTicker(ticks.append, clock=lambda: NOW, interval=10)

        ticker.start(CooldownTimer(until_ms=NOW + 60_000))
        await asyncio.sleep(0)
        ticker.start(CooldownTimer(until_ms=NOW + 5_000))
        await asyncio.sleep(0)
        ticker.cancel()
        await asyncio.sleep(0)

        assert ticks == [60, 5]
