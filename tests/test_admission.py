"""Unit tests for the admission gate strategies."""

import asyncio

import pytest

from throttled_fetcher.utils.admission import (
    BoundedAdmission,
    UnboundedAdmission,
    admission_gate,
)


def test_factory_picks_strategy() -> None:
    assert isinstance(admission_gate(0), UnboundedAdmission)
    bounded = admission_gate(3)
    assert isinstance(bounded, BoundedAdmission)
    assert bounded.limit == 3


def test_invalid_limits_are_rejected() -> None:
    with pytest.raises(ValueError):
        admission_gate(-1)
    with pytest.raises(ValueError):
        BoundedAdmission(0)


@pytest.mark.asyncio
async def test_bounded_gate_blocks_when_exhausted() -> None:
    gate = BoundedAdmission(1)
    await gate.acquire()

    waiter = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0.01)
    assert not waiter.done()

    gate.release()
    await asyncio.wait_for(waiter, 1.0)
    assert gate.in_flight == 1
    gate.release()
    assert gate.in_flight == 0


@pytest.mark.asyncio
async def test_unbounded_gate_never_blocks() -> None:
    gate = UnboundedAdmission()

    for _ in range(100):
        await asyncio.wait_for(gate.acquire(), 0.1)

    assert gate.in_flight == 100
    assert gate.peak_in_flight == 100
    assert gate.limit == 0


@pytest.mark.asyncio
async def test_permit_is_released_on_error() -> None:
    gate = BoundedAdmission(1)

    with pytest.raises(RuntimeError):
        async with gate.permit():
            raise RuntimeError("boom")

    assert gate.in_flight == 0
    await asyncio.wait_for(gate.acquire(), 0.1)


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_consume_a_permit() -> None:
    gate = BoundedAdmission(1)
    await gate.acquire()

    waiter = asyncio.create_task(gate.acquire())
    await asyncio.sleep(0.01)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    gate.release()
    await asyncio.wait_for(gate.acquire(), 0.1)
    assert gate.in_flight == 1
