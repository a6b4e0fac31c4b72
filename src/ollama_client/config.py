"""Connection, timeout and retry settings shared by the transport and client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

import httpx

from .retry import RetryPolicy

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_PORT = 11434


@dataclass(frozen=True, slots=True)
class Timeouts:
    """Independent time budgets, in seconds, for a single request.

    Attributes
    ----------
    connect:
        Maximum time to establish the TCP connection.
    read:
        Maximum gap between two reads of the response body. Streaming
        responses are subject to this budget for every chunk.
    total:
        Maximum time for the whole call, from sending the request to reading
        the last streamed record. ``None`` disables the budget.
    """

    connect: float = 60.0
    read: float = 120.0
    total: float | None = 600.0

    def __post_init__(self) -> None:
        for name in ("connect", "read", "total"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                msg = f"{name} timeout must be positive"
                raise ValueError(msg)

    def to_httpx(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self.connect,
            read=self.read,
            write=self.read,
            pool=self.connect,
        )


@dataclass(slots=True)
class ClientConfig:
    """Settings used to build an :class:`~ollama_client.client.OllamaClient`.

    Attributes
    ----------
    base_url:
        Root URL of the inference server.
    timeouts:
        Default time budgets; every operation can override them per call.
    retry:
        Default retry policy for retry-eligible operations.
    headers:
        Extra headers sent with every request, e.g. ``Authorization`` for a
        proxied server.
    max_connections, max_keepalive_connections:
        Connection pool limits of the shared HTTP client.
    """

    base_url: str = DEFAULT_BASE_URL
    timeouts: Timeouts = field(default_factory=Timeouts)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    headers: Mapping[str, str] = field(default_factory=dict)
    max_connections: int = 100
    max_keepalive_connections: int = 20

    def __post_init__(self) -> None:
        self.base_url = normalize_base_url(self.base_url)
        self.headers = dict(self.headers)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ClientConfig":
        """Build a configuration from ``OLLAMA_*`` environment variables.

        Recognised variables are ``OLLAMA_HOST``, ``OLLAMA_CONNECT_TIMEOUT``,
        ``OLLAMA_READ_TIMEOUT``, ``OLLAMA_TOTAL_TIMEOUT``,
        ``OLLAMA_MAX_RETRIES``, ``OLLAMA_RETRY_DELAY`` and
        ``OLLAMA_RETRY_BACKOFF``. Unset variables keep their defaults.
        ``OLLAMA_MAX_RETRIES`` counts retries after the first attempt, so ``0``
        disables retrying.
        """

        env = os.environ if environ is None else environ
        default_timeouts = Timeouts()
        default_retry = RetryPolicy()

        timeouts = Timeouts(
            connect=_env_float(env, "OLLAMA_CONNECT_TIMEOUT", default_timeouts.connect),
            read=_env_float(env, "OLLAMA_READ_TIMEOUT", default_timeouts.read),
            total=_env_float(env, "OLLAMA_TOTAL_TIMEOUT", default_timeouts.total),
        )
        retry = RetryPolicy(
            max_attempts=int(_env_float(env, "OLLAMA_MAX_RETRIES", default_retry.max_attempts - 1)) + 1,
            initial_delay=_env_float(env, "OLLAMA_RETRY_DELAY", default_retry.initial_delay),
            backoff_factor=_env_float(env, "OLLAMA_RETRY_BACKOFF", default_retry.backoff_factor),
        )
        return cls(
            base_url=env.get("OLLAMA_HOST") or DEFAULT_BASE_URL,
            timeouts=timeouts,
            retry=retry,
        )

    def limits(self) -> httpx.Limits:
        return httpx.Limits(
            max_connections=self.max_connections,
            max_keepalive_connections=self.max_keepalive_connections,
        )


def normalize_base_url(value: str) -> str:
    """Return ``value`` with a scheme and port, and without trailing slashes.

    ``OLLAMA_HOST`` is commonly given as ``host:port`` or a bare host, so both
    are accepted.
    """

    url = value.strip()
    if not url:
        msg = "base URL must not be empty"
        raise ValueError(msg)
    if "://" not in url:
        if ":" not in url.split("/", 1)[0]:
            host, _, rest = url.partition("/")
            url = f"{host}:{DEFAULT_PORT}" + (f"/{rest}" if rest else "")
        url = f"http://{url}"
    return url.rstrip("/")


def _env_float(env: Mapping[str, str], name: str, default: float | None) -> float | None:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        msg = f"{name} must be a number, got {raw!r}"
        raise ValueError(msg) from exc


__all__ = ["ClientConfig", "DEFAULT_BASE_URL", "Timeouts", "normalize_base_url"]
