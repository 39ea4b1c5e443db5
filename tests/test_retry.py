import asyncio

import pytest

from outlet_sync.clients.retry import call_with_retries, is_transient
from outlet_sync.errors import (
    ConfigurationError,
    PublishAuthorizationError,
    PublishConflictError,
    PublishRateLimitError,
    TransportError,
    UpstreamServiceError,
)


class Flaky:
    def __init__(self, errors, value="ok"):
        self.errors = list(errors)
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.value


def _run(operation, max_retries=3, backoff=1.0):
    waits = []

    async def fake_sleep(seconds):
        waits.append(seconds)

    result = asyncio.run(
        call_with_retries(
            operation,
            max_retries=max_retries,
            backoff_seconds=backoff,
            description="test call",
            sleep=fake_sleep,
        )
    )
    return result, waits


@pytest.mark.parametrize(
    "error, expected",
    [
        (TransportError("down"), True),
        (UpstreamServiceError(1, "boom", status_code=503), True),
        (UpstreamServiceError(1, "bad", status_code=400), False),
        (UpstreamServiceError(99991663, "token invalid"), False),
        (PublishRateLimitError("slow down", 429), True),
        (PublishConflictError("stale", 409), True),
        (PublishAuthorizationError("no", 401), False),
        (ConfigurationError("Feishu", ["FEISHU_APP_ID"]), False),
        (ValueError("other"), False),
    ],
)
def test_is_transient(error, expected):
    assert is_transient(error) is expected


def test_transient_failures_back_off_exponentially():
    operation = Flaky([TransportError("a"), TransportError("b")])

    result, waits = _run(operation)

    assert result == "ok"
    assert operation.calls == 3
    assert waits == [1.0, 2.0]


def test_retries_are_bounded():
    operation = Flaky([TransportError(str(i)) for i in range(5)])

    with pytest.raises(TransportError):
        _run(operation, max_retries=2)
    assert operation.calls == 3


def test_permanent_failure_is_not_retried():
    operation = Flaky([PublishAuthorizationError("denied", 403)])

    with pytest.raises(PublishAuthorizationError):
        _run(operation)
    assert operation.calls == 1


def test_zero_retries_means_single_attempt():
    operation = Flaky([TransportError("once")])

    with pytest.raises(TransportError):
        _run(operation, max_retries=0)
    assert operation.calls == 1
