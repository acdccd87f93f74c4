import pytest

from glowcheck.errors import PermanentServiceError, TransientServiceError
from glowcheck.services.retry import RetryPolicy, linear_backoff


class Flaky:
    def __init__(self, failures):
        self.failures = list(failures)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return "ok"


def _transient():
    return TransientServiceError("boom", service="test", status_code=500)


def test_linear_backoff_grows_with_attempt():
    assert [linear_backoff(n, 1.0) for n in (1, 2, 3)] == [1.0, 2.0, 3.0]
    assert linear_backoff(2, 0.5) == 1.0


@pytest.mark.asyncio
async def test_retries_transient_then_succeeds(fake_sleep, sleeps):
    operation = Flaky([_transient(), _transient()])
    policy = RetryPolicy(max_retries=2, base_delay_s=1.0, sleep=fake_sleep)

    assert await policy.run(operation) == "ok"
    assert operation.calls == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_raises_last_error_when_exhausted(fake_sleep, sleeps):
    operation = Flaky([_transient(), _transient(), _transient(), _transient()])
    policy = RetryPolicy(max_retries=2, base_delay_s=1.0, sleep=fake_sleep)

    with pytest.raises(TransientServiceError):
        await policy.run(operation)
    assert operation.calls == 3
    # No backoff after the final attempt.
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_permanent_error_is_not_retried(fake_sleep, sleeps):
    operation = Flaky([PermanentServiceError("bad request", service="test", status_code=400)])
    policy = RetryPolicy(sleep=fake_sleep)

    with pytest.raises(PermanentServiceError):
        await policy.run(operation)
    assert operation.calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_custom_retryable_predicate(fake_sleep):
    operation = Flaky([ValueError("flaky parse")])
    policy = RetryPolicy(
        max_retries=1,
        retryable=lambda exc: isinstance(exc, ValueError),
        sleep=fake_sleep,
    )

    assert await policy.run(operation) == "ok"
    assert policy.max_attempts == 2
