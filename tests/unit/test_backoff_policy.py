"""Tests for BackoffPolicy delay computation."""

import pytest

from resilient_stomp import backoff_policy
from resilient_stomp.backoff_policy import BackoffPolicy
from resilient_stomp.config import ConfigurationError


def test_default_schedule_doubles_until_cap():
    policy = BackoffPolicy()

    delays = [policy.calculate_delay(attempt) for attempt in range(7)]

    assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]


def test_custom_multiplier_and_cap():
    policy = BackoffPolicy(base_delay=0.5, multiplier=3.0, max_delay=10.0)

    assert policy.calculate_delay(0) == 0.5
    assert policy.calculate_delay(1) == 1.5
    assert policy.calculate_delay(2) == 4.5
    assert policy.calculate_delay(3) == 10.0


def test_multiplier_one_gives_constant_delay():
    policy = BackoffPolicy(base_delay=2.0, multiplier=1.0)

    assert {policy.calculate_delay(attempt) for attempt in range(5)} == {2.0}


def test_can_retry_respects_ceiling():
    policy = BackoffPolicy(max_attempts=2)

    assert policy.can_retry(0)
    assert policy.can_retry(1)
    assert not policy.can_retry(2)


def test_zero_attempts_never_retries():
    assert not BackoffPolicy(max_attempts=0).can_retry(0)


def test_jitter_applied_around_base_delay(monkeypatch):
    captured = {}

    def fake_uniform(low, high):
        captured["range"] = (low, high)
        return high

    monkeypatch.setattr(backoff_policy, "uniform", fake_uniform)
    policy = BackoffPolicy(base_delay=4.0, jitter_range=0.25)

    assert policy.calculate_delay(0) == 5.0
    assert captured["range"] == (-1.0, 1.0)


def test_without_jitter_random_is_not_consulted(monkeypatch):
    def fail_uniform(low, high):
        raise AssertionError("uniform should not be called")

    monkeypatch.setattr(backoff_policy, "uniform", fail_uniform)

    assert BackoffPolicy().calculate_delay(3) == 8.0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"base_delay": -1.0},
        {"multiplier": 0.5},
        {"max_delay": -0.1},
        {"max_attempts": -1},
        {"max_attempts": 1.5},
        {"max_attempts": True},
        {"jitter_range": 1.0},
    ],
)
def test_invalid_parameters_rejected(kwargs):
    with pytest.raises(ConfigurationError):
        BackoffPolicy(**kwargs)
