"""Tests for the reconnect timer and attempt counter."""

import asyncio
from unittest.mock import MagicMock

import pytest

from resilient_stomp.backoff_policy import BackoffPolicy
from resilient_stomp.reconnecting_client_helpers import ReconnectScheduler


def make_scheduler(**policy_kwargs):
    return ReconnectScheduler("svc", BackoffPolicy(**policy_kwargs))


@pytest.mark.asyncio
async def test_schedule_returns_growing_delays():
    scheduler = make_scheduler()
    on_fire = MagicMock()

    delays = [scheduler.schedule(on_fire) for _ in range(3)]

    assert delays == [1.0, 2.0, 4.0]
    assert scheduler.attempts == 3
    assert scheduler.last_delay == 4.0
    scheduler.cancel()
    on_fire.assert_not_called()


@pytest.mark.asyncio
async def test_only_one_timer_pending():
    scheduler = make_scheduler(base_delay=0.01)
    first = MagicMock()
    second = MagicMock()

    scheduler.schedule(first)
    scheduler.schedule(second)
    await asyncio.sleep(0.1)

    first.assert_not_called()
    second.assert_called_once_with()
    assert not scheduler.has_pending


@pytest.mark.asyncio
async def test_schedule_refuses_past_ceiling():
    scheduler = make_scheduler(max_attempts=1)

    assert scheduler.schedule(MagicMock()) == 1.0
    scheduler.cancel()

    assert scheduler.schedule(MagicMock()) is None
    assert not scheduler.has_pending
    assert scheduler.attempts == 1


@pytest.mark.asyncio
async def test_reaching_ceiling_cancels_pending_timer():
    scheduler = make_scheduler(max_attempts=1, base_delay=0.01)
    on_fire = MagicMock()

    scheduler.schedule(on_fire)
    assert scheduler.schedule(on_fire) is None
    await asyncio.sleep(0.05)

    assert not scheduler.has_pending
    on_fire.assert_not_called()


@pytest.mark.asyncio
async def test_cancel_reports_whether_timer_was_pending():
    scheduler = make_scheduler()

    assert scheduler.cancel() is False
    scheduler.schedule(MagicMock())
    assert scheduler.has_pending
    assert scheduler.cancel() is True
    assert not scheduler.has_pending


def test_reset_clears_attempts():
    scheduler = make_scheduler()
    scheduler.attempts = 4
    scheduler.last_delay = 16.0

    scheduler.reset()

    assert scheduler.attempts == 0
    assert scheduler.last_delay is None
    assert scheduler.can_retry()
