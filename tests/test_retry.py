from __future__ import annotations

import asyncio

import httpx
import pytest

from ollama_client import ErrorKind, OllamaError, RetryPolicy, retry
from tests.fixtures.ollama_fake import RecordingSleep


class FlakyOperation:
    """Fails with the given faults, in order, before returning ``result``."""

    def __init__(self, faults: list[BaseException], result: str = "ok") -> None:
        self._faults = list(faults)
        self._result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self._faults:
            raise self._faults.pop(0)
        return self._result


def test_succeeds_after_transient_failures():
    sleep = RecordingSleep()
    operation = FlakyOperation([httpx.ConnectError("refused"), OllamaError.http(503, "busy")])

    result = asyncio.run(retry(operation, sleep=sleep))

    assert result == "ok"
    assert operation.calls == 3
    assert sleep.delays == [0.5, 1.0]


def test_last_failure_is_raised_without_waiting():
    sleep = RecordingSleep()
    operation = FlakyOperation([OllamaError.timeout(), OllamaError.timeout(), OllamaError.network("third")])

    with pytest.raises(OllamaError) as excinfo:
        asyncio.run(retry(operation, sleep=sleep))

    assert excinfo.value.kind is ErrorKind.NETWORK
    assert excinfo.value.message == "third"
    assert operation.calls == 3
    assert sleep.delays == [0.5, 1.0]


@pytest.mark.parametrize(
    "fault",
    [
        OllamaError.invalid_request("bad"),
        OllamaError.not_found("llama3"),
        OllamaError.serialization(),
        OllamaError.unsupported("no tools"),
    ],
)
def test_permanent_failures_short_circuit(fault: OllamaError):
    sleep = RecordingSleep()
    operation = FlakyOperation([fault])

    with pytest.raises(OllamaError) as excinfo:
        asyncio.run(retry(operation, sleep=sleep))

    assert excinfo.value is fault
    assert operation.calls == 1
    assert sleep.delays == []


def test_raw_faults_are_classified_and_chained():
    sleep = RecordingSleep()
    cause = httpx.ConnectError("refused")
    operation = FlakyOperation([cause])

    with pytest.raises(OllamaError) as excinfo:
        asyncio.run(retry(operation, policy=RetryPolicy.disabled(), sleep=sleep))

    assert excinfo.value.kind is ErrorKind.NETWORK
    assert excinfo.value.__cause__ is cause


def test_custom_backoff_schedule():
    policy = RetryPolicy(max_attempts=4, initial_delay=0.1, backoff_factor=3.0)
    assert policy.delays() == pytest.approx([0.1, 0.3, 0.9])

    sleep = RecordingSleep()
    operation = FlakyOperation([OllamaError.timeout()] * 3)
    assert asyncio.run(retry(operation, policy=policy, sleep=sleep)) == "ok"
    assert sleep.delays == pytest.approx([0.1, 0.3, 0.9])


def test_cancellation_is_not_retried():
    sleep = RecordingSleep()
    operation = FlakyOperation([asyncio.CancelledError()])

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(retry(operation, sleep=sleep))

    assert operation.calls == 1
    assert sleep.delays == []


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": 0},
        {"initial_delay": -1.0},
        {"backoff_factor": 0.5},
    ],
)
def test_policy_validation(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)
