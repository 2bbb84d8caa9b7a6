"""Back-off behaviour of ConnectionRetryPolicy with a fake clock."""

import pytest

from rendercache.errors import DatabaseBusyError, DatabaseError
from rendercache.infrastructure.db.retry import ConnectionRetryPolicy


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class Flaky:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"failure {self.calls}")
        return "conn"


@pytest.fixture
def clock():
    return FakeClock()


def _policy(clock, sleeps, **kwargs):
    return ConnectionRetryPolicy(sleep=sleeps.append, clock=clock, **kwargs)


def test_success_without_failures_never_sleeps(clock):
    sleeps = []
    policy = _policy(clock, sleeps)
    assert policy.call(lambda: "conn", retry_on=(ConnectionError,)) == "conn"
    assert sleeps == []


def test_backoff_grows_with_recent_errors(clock):
    sleeps = []
    policy = _policy(clock, sleeps, max_retries=5)
    connect = Flaky(failures=4)

    assert policy.call(connect, retry_on=(ConnectionError,)) == "conn"
    # round(sqrt(n)) for n = 0, 1, 2, 3 earlier failures
    assert sleeps == [0.0, 1.0, 1.0, 2.0]


def test_exhaustion_raises_busy_with_last_backoff(clock):
    sleeps = []
    policy = _policy(clock, sleeps, max_retries=3)
    connect = Flaky(failures=10)

    with pytest.raises(DatabaseBusyError) as excinfo:
        policy.call(connect, retry_on=(ConnectionError,))

    assert connect.calls == 3
    assert sleeps == [0.0, 1.0]
    assert excinfo.value.backoff == 1.0
    assert isinstance(excinfo.value, DatabaseError)
    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_other_errors_are_not_retried(clock):
    sleeps = []
    policy = _policy(clock, sleeps)

    def broken():
        raise ValueError("bad path")

    with pytest.raises(ValueError):
        policy.call(broken, retry_on=(ConnectionError,))
    assert sleeps == []


def test_old_errors_are_swept(clock):
    policy = _policy(clock, [], error_window=60.0)
    for _ in range(9):
        policy.mark_and_sweep()
    assert policy.mark_and_sweep() == 3.0

    clock.now = 61.0
    assert policy.mark_and_sweep() == 0.0
    assert policy.mark_and_sweep() == 1.0


def test_backoff_is_capped(clock):
    policy = _policy(clock, [], max_backoff=2.0)
    assert policy.calculate_backoff(100) == 2.0
    assert policy.calculate_backoff(0) == 0.0
