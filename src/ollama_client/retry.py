"""Exponential backoff retry for the connection phase of API calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from .classify import map_fault
from .errors import OllamaError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[object]]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How often and how patiently a transient failure is retried.

    Attributes
    ----------
    max_attempts:
        Total number of times the operation is invoked, including the first.
    initial_delay:
        Seconds to wait before the second attempt.
    backoff_factor:
        Multiplier applied to the delay after every retry.
    """

    max_attempts: int = 3
    initial_delay: float = 0.5
    backoff_factor: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        if self.initial_delay < 0:
            msg = "initial_delay cannot be negative"
            raise ValueError(msg)
        if self.backoff_factor < 1:
            msg = "backoff_factor must be at least 1.0"
            raise ValueError(msg)

    @classmethod
    def disabled(cls) -> "RetryPolicy":
        """A policy that invokes the operation exactly once."""

        return cls(max_attempts=1)

    def delays(self) -> list[float]:
        """Return the waits scheduled between consecutive attempts."""

        return [self.initial_delay * self.backoff_factor**index for index in range(self.max_attempts - 1)]


async def retry(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy | None = None,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Invoke ``operation`` until it succeeds or the policy gives up.

    Every fault is classified with :func:`~ollama_client.classify.map_fault`.
    Permanent faults are raised at once. Transient ones are retried after an
    exponentially growing delay. The final attempt's fault is raised without
    waiting. Cancellation is never retried.
    """

    policy = policy or RetryPolicy()

    def log_retry(state: RetryCallState) -> None:
        fault = state.outcome.exception() if state.outcome else None
        delay = state.next_action.sleep if state.next_action else 0.0
        LOGGER.warning(
            "attempt %d/%d failed (%s); retrying in %.3fs",
            state.attempt_number,
            policy.max_attempts,
            fault,
            delay,
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(multiplier=policy.initial_delay, exp_base=policy.backoff_factor),
        retry=retry_if_exception(_is_transient),
        before_sleep=log_retry,
        sleep=sleep,
        reraise=True,
    )
    return await retrying(_classified, operation)


async def _classified(operation: Callable[[], Awaitable[T]]) -> T:
    try:
        return await operation()
    except Exception as exc:
        fault = map_fault(exc)
        if fault is exc:
            raise
        raise fault from exc


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, OllamaError) and exc.is_transient


__all__ = ["RetryPolicy", "Sleep", "retry"]
