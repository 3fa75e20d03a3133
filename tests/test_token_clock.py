import asyncio
from unittest.mock import AsyncMock

import pytest

from session.errors import SessionExpired
from session.models import TokenPair
from session.store import SessionStore
from session.token_clock import TokenClock
from tests.fakes import NOW, make_token


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def on_fire():
    return AsyncMock()


@pytest.fixture
def clock(store, on_fire):
    return TokenClock(store, on_fire=on_fire, skew_seconds=300, now=lambda: NOW)


def test_compute_delay_is_exp_minus_now_minus_skew(clock):
    assert clock.compute_delay(TokenPair(make_token(3600), "R1")) == 3300
    assert clock.compute_delay(TokenPair(make_token(120), "R1")) == -180


def test_compute_delay_for_malformed_token_is_zero(clock):
    assert clock.compute_delay(TokenPair("opaque", "R1")) == 0.0


@pytest.mark.asyncio
async def test_schedules_refresh_skew_before_exp(clock, store, on_fire):
    loop = asyncio.get_running_loop()

    delay = clock.schedule(TokenPair(make_token(3600), "R1"))

    assert delay == 3300
    assert store.refresh_due_at == NOW + 3300
    handle = store.pending_timer
    assert isinstance(handle, asyncio.TimerHandle)
    assert handle.when() - loop.time() == pytest.approx(3300, abs=1)
    on_fire.assert_not_called()
    clock.cancel()


@pytest.mark.parametrize("access_token", [make_token(-10), make_token(60), "opaque"])
@pytest.mark.asyncio
async def test_due_token_fires_on_next_tick(clock, store, on_fire, access_token):
    delay = clock.schedule(TokenPair(access_token, "R1"))

    assert delay == 0.0
    assert store.refresh_due_at == NOW
    assert not isinstance(store.pending_timer, asyncio.TimerHandle)
    on_fire.assert_not_called()

    await asyncio.sleep(0)
    assert clock.task is not None
    await clock.task

    on_fire.assert_awaited_once()
    assert store.pending_timer is None


@pytest.mark.asyncio
async def test_rescheduling_keeps_a_single_timer(clock, store):
    clock.schedule(TokenPair(make_token(3600), "R1"))
    first = store.pending_timer

    clock.schedule(TokenPair(make_token(7200), "R2"))

    assert first.cancelled()
    assert store.pending_timer is not first
    assert store.refresh_due_at == NOW + 6900
    clock.cancel()


@pytest.mark.asyncio
async def test_cancel_prevents_firing(clock, store, on_fire):
    clock.schedule(TokenPair(make_token(-10), "R1"))
    handle = store.pending_timer

    clock.cancel()
    await asyncio.sleep(0)

    assert handle.cancelled()
    assert clock.task is None
    on_fire.assert_not_called()


@pytest.mark.asyncio
async def test_refresh_failure_on_timer_is_contained(clock, on_fire):
    on_fire.side_effect = SessionExpired()

    clock.schedule(TokenPair(make_token(-10), "R1"))
    await asyncio.sleep(0)

    await clock.task
    on_fire.assert_awaited_once()

