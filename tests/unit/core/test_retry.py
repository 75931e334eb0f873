"""Unit tests for the shared retry policy."""

import pytest

from pinranks.retry import RetryError, RetryPolicy

pytestmark = pytest.mark.unit


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestDelays:
    def test_exponential(self):
        policy = RetryPolicy(max_attempts=4, base_delay=0.5, multiplier=2.0)
        assert policy.delays() == [0.5, 1.0, 2.0]

    def test_capped(self):
        policy = RetryPolicy(max_attempts=5, base_delay=1.0, multiplier=3.0, max_delay=2.0)
        assert all(d <= 2.0 for d in policy.delays())

    def test_single_attempt_has_no_delays(self):
        assert RetryPolicy(max_attempts=1).delays() == []


class TestRun:
    async def test_success_on_first_try(self):
        calls = [0]
        sleep = RecordingSleep()

        async def succeeds():
            calls[0] += 1
            return "ok"

        assert await RetryPolicy().run(succeeds, "test", sleep=sleep) == "ok"
        assert calls[0] == 1
        assert sleep.delays == []

    async def test_retry_then_succeed(self):
        calls = [0]
        sleep = RecordingSleep()

        async def fails_twice():
            calls[0] += 1
            if calls[0] < 3:
                raise ConnectionError("Temporary failure")
            return "ok"

        policy = RetryPolicy(max_attempts=3, base_delay=0.01)
        assert await policy.run(fails_twice, "test", sleep=sleep) == "ok"
        assert calls[0] == 3
        assert sleep.delays == [0.01, 0.02]

    async def test_all_attempts_exhausted(self):
        calls = [0]

        async def always_fails():
            calls[0] += 1
            raise ConnectionError("down")

        with pytest.raises(RetryError) as excinfo:
            await RetryPolicy(max_attempts=3).run(always_fails, "fetch:machines", sleep=RecordingSleep())

        assert calls[0] == 3
        assert excinfo.value.attempts == 3
        assert excinfo.value.context == "fetch:machines"
        assert isinstance(excinfo.value.last_error, ConnectionError)

    async def test_non_retryable_propagates(self):
        calls = [0]

        async def bad_input():
            calls[0] += 1
            raise KeyError("opdb_id")

        with pytest.raises(KeyError):
            await RetryPolicy().run(bad_input, "test", retry_on=(ConnectionError,), sleep=RecordingSleep())
        assert calls[0] == 1
