"""Newline-delimited JSON stream decoding.

Streaming endpoints answer with one JSON object per line, terminated by a
record whose ``done`` flag is true. :class:`NDJSONStream` turns the raw byte
stream into a lazy, finite, non-restartable async iterator of typed records.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from collections.abc import AsyncIterable, Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Deque, Generic, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .classify import classify_response, map_fault
from .errors import ErrorKind, OllamaError
from .transport import StreamHandle

LOGGER = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

Closer = Callable[[], Awaitable[None]]


class StreamState(str, Enum):
    """Lifecycle of an open stream, from the first byte to its end."""

    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class DecodeFailure:
    """Terminal stream event describing a line that could not be decoded."""

    line: str
    error: OllamaError


class LineBuffer:
    """Reassemble complete lines from arbitrarily split byte chunks."""

    def __init__(self) -> None:
        self._pending = bytearray()

    def feed(self, chunk: bytes) -> List[bytes]:
        """Add ``chunk`` and return every line it completed, without terminators."""

        self._pending.extend(chunk)
        lines: List[bytes] = []
        while True:
            index = self._pending.find(b"\n")
            if index < 0:
                break
            lines.append(bytes(self._pending[:index]).rstrip(b"\r"))
            del self._pending[: index + 1]
        return lines

    def flush(self) -> Optional[bytes]:
        """Return the unterminated tail once the byte stream has ended."""

        if not self._pending:
            return None
        tail = bytes(self._pending).rstrip(b"\r")
        self._pending.clear()
        return tail


class NDJSONStream(AsyncIterator[RecordT], Generic[RecordT]):
    """Async iterator of typed records decoded from an NDJSON body.

    * Blank lines are skipped.
    * Every other line is validated as ``record_type``; unknown fields are
      ignored by the response models.
    * A malformed line raises a ``SERIALIZATION`` :class:`OllamaError` carrying
      the raw line and ends the stream; later lines are never read.
    * The record whose ``done`` flag is true is the last one yielded. The
      underlying connection is released right after it.
    * Cancelling the consuming task, leaving an ``async for`` loop early, or
      closing the stream releases the connection as well.
    """

    def __init__(
        self,
        chunks: AsyncIterable[bytes],
        record_type: Type[RecordT],
        *,
        closer: Closer | None = None,
        deadline: float | None = None,
        status_code: int = 200,
    ) -> None:
        self._chunks = chunks.__aiter__()
        self._record_type = record_type
        self._closer = closer
        self._deadline = deadline
        self._status_code = status_code
        self._lines = LineBuffer()
        self._pending: Deque[bytes] = deque()
        self._exhausted = False
        self._closed = False
        self._close_lock = asyncio.Lock()
        self.state = StreamState.STREAMING
        self.records_seen = 0

    @classmethod
    def from_handle(cls, handle: StreamHandle, record_type: Type[RecordT]) -> "NDJSONStream[RecordT]":
        """Wrap an open response returned by :meth:`HttpTransport.open_stream`."""

        response = handle.response
        return cls(
            response.aiter_bytes(),
            record_type,
            closer=response.aclose,
            deadline=handle.deadline,
            status_code=response.status_code,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[RecordT]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[RecordT]:
        # Abandoning the loop (break, or cancellation while the caller handles a
        # record) finalizes this generator, which releases the connection.
        try:
            while True:
                try:
                    record = await self.__anext__()
                except StopAsyncIteration:
                    return
                yield record
        finally:
            await self.aclose()

    async def __anext__(self) -> RecordT:
        while True:
            if self._closed:
                raise StopAsyncIteration

            while self._pending:
                line = self._pending.popleft()
                if not line.strip():
                    continue
                record = await self._decode(line)
                self.records_seen += 1
                if getattr(record, "done", False):
                    self.state = StreamState.DONE
                    await self.aclose()
                return record

            if self._exhausted:
                await self._fail(OllamaError.network("stream ended before a terminal record was received"))

            await self._fill()

    async def aclose(self) -> None:
        """Release the connection and stop iteration. Idempotent."""

        async with self._close_lock:
            if self._closed:
                return
            self._closed = True
            self._pending.clear()
            if self.state is StreamState.STREAMING:
                self.state = StreamState.CANCELLED
                LOGGER.debug("stream closed after %d record(s) without a terminal record", self.records_seen)
            if self._closer is not None:
                await self._closer()

    async def __aenter__(self) -> "NDJSONStream[RecordT]":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def events(self) -> AsyncIterator[Union[RecordT, DecodeFailure]]:
        """Yield records, ending with a :class:`DecodeFailure` instead of raising
        when a line cannot be decoded. Other errors still propagate."""

        try:
            async for record in self:
                yield record
        except OllamaError as exc:
            if exc.kind is not ErrorKind.SERIALIZATION or exc.raw_line is None:
                raise
            yield DecodeFailure(line=exc.raw_line, error=exc)
        finally:
            await self.aclose()

    async def _fill(self) -> None:
        try:
            chunk = await self._read_chunk()
        except StopAsyncIteration:
            self._exhausted = True
            tail = self._lines.flush()
            if tail is not None:
                self._pending.append(tail)
            return
        except asyncio.CancelledError:
            self.state = StreamState.CANCELLED
            await self.aclose()
            raise
        except Exception as exc:
            await self._fail(map_fault(exc), exc)
        self._pending.extend(self._lines.feed(chunk))

    async def _read_chunk(self) -> bytes:
        if self._deadline is None:
            return await self._chunks.__anext__()
        remaining = self._deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            raise OllamaError.timeout("total request budget exhausted while streaming")
        try:
            return await asyncio.wait_for(self._chunks.__anext__(), remaining)
        except TimeoutError as exc:
            raise OllamaError.timeout("total request budget exhausted while streaming", cause=exc) from exc

    async def _decode(self, line: bytes) -> RecordT:
        try:
            return self._record_type.model_validate_json(line)
        except ValidationError as exc:
            text = line.decode("utf-8", errors="replace")
            envelope_error = _error_envelope(line)
            if envelope_error is not None:
                await self._fail(classify_response(self._status_code, envelope_error), exc)
            name = self._record_type.__name__
            await self._fail(
                OllamaError.serialization(f"Failed to parse {name}: {text}", raw_line=text, cause=exc),
                exc,
            )
            raise  # pragma: no cover - _fail always raises

    async def _fail(self, error: OllamaError, cause: BaseException | None = None) -> None:
        self.state = StreamState.FAILED
        await self.aclose()
        if cause is None or cause is error:
            raise error
        raise error from cause


def _error_envelope(line: bytes) -> Optional[str]:
    try:
        payload = json.loads(line)
    except ValueError:
        return None
    if isinstance(payload, dict) and "error" in payload:
        return line.decode("utf-8", errors="replace")
    return None


async def collect(stream: NDJSONStream[RecordT]) -> List[RecordT]:
    """Drain ``stream`` into a list, always releasing the connection."""

    records: List[RecordT] = []
    try:
        async for record in stream:
            records.append(record)
    finally:
        await stream.aclose()
    return records


__all__ = [
    "DecodeFailure",
    "LineBuffer",
    "NDJSONStream",
    "StreamState",
    "collect",
]
