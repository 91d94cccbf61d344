"""Unit tests for the shared throttle deadline."""

import asyncio
from time import monotonic

import pytest

from throttled_fetcher.utils.throttle import ThrottleState


def test_new_state_is_not_throttled(fake_time) -> None:
    state = ThrottleState(clock=fake_time.time)

    assert state.remaining() == 0.0
    assert not state.is_throttled
    assert state.throttle_count == 0


def test_defer_sets_deadline_relative_to_now(fake_time) -> None:
    state = ThrottleState(clock=fake_time.time)

    deadline = state.defer(30)

    assert deadline == pytest.approx(1_030.0)
    assert state.read_deadline() == pytest.approx(1_030.0)
    assert state.remaining() == pytest.approx(30.0)

    fake_time.advance(31)
    assert state.remaining() == 0.0


def test_most_recent_write_wins(fake_time) -> None:
    state = ThrottleState(clock=fake_time.time)

    state.defer(60)
    fake_time.advance(1)
    state.defer(5)

    assert state.remaining() == pytest.approx(5.0)
    assert state.throttle_count == 2
    assert state.peak_delay == 60


def test_set_deadline_overrides(fake_time) -> None:
    state = ThrottleState(clock=fake_time.time)

    state.set_deadline(1_010.0)

    assert state.read_deadline() == 1_010.0
    assert state.is_throttled


@pytest.mark.asyncio
async def test_wait_returns_immediately_when_clear() -> None:
    state = ThrottleState()

    started = monotonic()
    await state.wait()

    assert monotonic() - started < 0.05


@pytest.mark.asyncio
async def test_wait_sleeps_until_deadline() -> None:
    state = ThrottleState()
    state.defer(0.15)

    started = monotonic()
    await state.wait()

    assert monotonic() - started >= 0.13


@pytest.mark.asyncio
async def test_wait_is_cancellable() -> None:
    state = ThrottleState()
    state.defer(30)

    task = asyncio.create_task(state.wait())
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
