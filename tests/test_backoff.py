"""Tests for BackoffState."""

import threading

from influxwire.sync.backoff import BackoffState
from influxwire.utils.config import BackoffPolicy


def test_open_until_threshold_exceeded(clock) -> None:
    state = BackoffState(BackoffPolicy(failures_before_backoff=2, backoff_period=10), clock)

    assert state.record_failure() is False
    assert state.record_failure() is False
    assert state.try_acquire() is True

    assert state.record_failure() is True
    assert state.try_acquire() is False
    assert state.is_backing_off is True
    assert state.consecutive_failures == 3


def test_zero_threshold_backs_off_after_first_failure(clock) -> None:
    state = BackoffState(BackoffPolicy(failures_before_backoff=0, backoff_period=10), clock)

    assert state.record_failure() is True
    assert state.try_acquire() is False


def test_failures_during_window_are_ignored(clock) -> None:
    state = BackoffState(BackoffPolicy(failures_before_backoff=1, backoff_period=10), clock)
    state.record_failure()
    state.record_failure()
    remaining = state.remaining()

    clock.advance(5)
    assert state.record_failure() is False

    assert state.consecutive_failures == 2
    assert state.remaining() == remaining - 5


def test_window_elapses_and_clears_count(clock) -> None:
    state = BackoffState(BackoffPolicy(failures_before_backoff=1, backoff_period=10), clock)
    state.record_failure()
    state.record_failure()

    clock.advance(9)
    assert state.try_acquire() is False

    clock.advance(1)
    assert state.try_acquire() is True
    assert state.consecutive_failures == 0
    assert state.is_backing_off is False
    assert state.remaining() == 0.0


def test_success_resets_everything(clock) -> None:
    state = BackoffState(BackoffPolicy(failures_before_backoff=1, backoff_period=10), clock)
    state.record_failure()
    state.record_failure()

    state.record_success()

    assert state.consecutive_failures == 0
    assert state.try_acquire() is True


def test_concurrent_failures_arm_window_once(clock) -> None:
    policy = BackoffPolicy(failures_before_backoff=5, backoff_period=10)
    state = BackoffState(policy, clock)
    armed = []
    barrier = threading.Barrier(20)

    def fail() -> None:
        barrier.wait()
        armed.append(state.record_failure())

    threads = [threading.Thread(target=fail) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert armed.count(True) == 1
    assert state.consecutive_failures == policy.failures_before_backoff + 1
