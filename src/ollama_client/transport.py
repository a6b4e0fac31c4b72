"""Thin asynchronous HTTP layer over a pooled :class:`httpx.AsyncClient`."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from .classify import map_fault, raise_for_status
from .config import ClientConfig, Timeouts

LOGGER = logging.getLogger(__name__)

USER_AGENT = "ollama-async-client"


@dataclass(slots=True)
class StreamHandle:
    """An open streaming response and the loop time its total budget expires."""

    response: httpx.Response
    deadline: float | None = None


class HttpTransport:
    """Issue JSON requests against the inference server.

    The transport owns the connection pool unless an existing ``client`` is
    supplied, in which case the caller remains responsible for closing it.
    Every fault leaving the transport is an
    :class:`~ollama_client.errors.OllamaError`.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._owns_client = client is None
        if client is None:
            headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
            headers.update(self._config.headers)
            client = httpx.AsyncClient(
                timeout=self._config.timeouts.to_httpx(),
                limits=self._config.limits(),
                headers=headers,
                transport=transport,
            )
        self._client = client
        self._closed = False

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    def url(self, path: str) -> str:
        return f"{self._config.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Mapping[str, Any] | None = None,
        timeouts: Timeouts | None = None,
    ) -> httpx.Response:
        """Send a unary request and return the fully read, successful response."""

        budget = timeouts or self._config.timeouts
        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self._client.request(
                    method,
                    self.url(path),
                    json=json,
                    timeout=budget.to_httpx(),
                ),
                budget.total,
            )
        except Exception as exc:
            LOGGER.debug("%s %s failed after %.3fs: %r", method, path, time.perf_counter() - started, exc)
            raise map_fault(exc) from exc

        LOGGER.debug(
            "%s %s -> %s in %.3fs",
            method,
            path,
            response.status_code,
            time.perf_counter() - started,
        )
        await raise_for_status(response)
        return response

    async def open_stream(
        self,
        method: str,
        path: str,
        *,
        json: Mapping[str, Any] | None = None,
        timeouts: Timeouts | None = None,
    ) -> StreamHandle:
        """Send a request whose body will be consumed incrementally.

        An unsuccessful status is classified and raised before any of the body
        is handed to the caller; the response is closed in that case.
        """

        budget = timeouts or self._config.timeouts
        loop = asyncio.get_running_loop()
        deadline = None if budget.total is None else loop.time() + budget.total
        request = self._client.build_request(
            method,
            self.url(path),
            json=json,
            timeout=budget.to_httpx(),
        )

        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self._client.send(request, stream=True),
                budget.total,
            )
        except Exception as exc:
            LOGGER.debug("%s %s (stream) failed after %.3fs: %r", method, path, time.perf_counter() - started, exc)
            raise map_fault(exc) from exc

        LOGGER.debug(
            "%s %s (stream) -> %s in %.3fs",
            method,
            path,
            response.status_code,
            time.perf_counter() - started,
        )
        if not response.is_success:
            try:
                await raise_for_status(response)
            finally:
                await response.aclose()
        return StreamHandle(response=response, deadline=deadline)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


__all__ = ["HttpTransport", "StreamHandle", "USER_AGENT"]
