"""Asynchronous client for the Ollama HTTP API."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from pathlib import Path
from typing import Any, List, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError

from .config import ClientConfig, Timeouts
from .errors import OllamaError
from .models import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatTool,
    CopyModelRequest,
    CreateModelRequest,
    DeleteModelRequest,
    EmbedRequest,
    EmbedResponse,
    FormatHint,
    GenerateRequest,
    GenerateResponse,
    ListModelsResponse,
    ListRunningModelsResponse,
    Options,
    ParameterValue,
    PullProgress,
    PullRequest,
    PushProgress,
    PushRequest,
    ShowModelRequest,
    ShowModelResponse,
    ThinkOption,
    VersionResponse,
    merge_options,
)
from .models.common import RequestModel
from .retry import RetryPolicy, Sleep, retry
from .stream import NDJSONStream
from .transport import HttpTransport, StreamHandle

LOGGER = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
RequestT = TypeVar("RequestT", bound=RequestModel)

MessageInput = Union[ChatMessage, Mapping[str, Any]]
ToolInput = Union[ChatTool, Mapping[str, Any]]

CHAT_PATH = "/api/chat"
GENERATE_PATH = "/api/generate"
EMBED_PATH = "/api/embed"
TAGS_PATH = "/api/tags"
PS_PATH = "/api/ps"
SHOW_PATH = "/api/show"
VERSION_PATH = "/api/version"
CREATE_PATH = "/api/create"
COPY_PATH = "/api/copy"
DELETE_PATH = "/api/delete"
PULL_PATH = "/api/pull"
PUSH_PATH = "/api/push"


class OllamaClient:
    """Typed operations against a local Ollama server.

    Unary operations return a parsed response model. Streaming operations
    return an :class:`~ollama_client.stream.NDJSONStream` once the connection
    is established; the records are read lazily as the caller iterates.

    Every failure surfaces as a single :class:`~ollama_client.errors.OllamaError`.
    Transient failures of read-only and generation calls, and of the connection
    phase of streaming calls, are retried according to the configured
    :class:`~ollama_client.retry.RetryPolicy`. Mutating calls (create, copy,
    delete) are issued exactly once.

    Example
    -------
    >>> async with OllamaClient() as client:  # doctest: +SKIP
    ...     reply = await client.chat("llama3.2", [ChatMessage.user("hi")])
    ...     print(reply.content)
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        config: ClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        http_client: httpx.AsyncClient | None = None,
        default_options: Options | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        config = config or ClientConfig()
        if base_url is not None:
            config = dataclasses.replace(config, base_url=base_url)
        self._http = HttpTransport(config, client=http_client, transport=transport)
        self._default_options = default_options
        self._sleep = sleep

    @property
    def config(self) -> ClientConfig:
        return self._http.config

    @property
    def base_url(self) -> str:
        return self._http.config.base_url

    @property
    def closed(self) -> bool:
        return self._http.closed

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "OllamaClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- generation -----------------------------------------------------

    async def chat(
        self,
        model: str,
        messages: Sequence[MessageInput],
        *,
        tools: Sequence[ToolInput] | None = None,
        format: FormatHint | None = None,
        options: Options | None = None,
        think: ThinkOption | None = None,
        keep_alive: str | None = None,
        logprobs: bool | None = None,
        top_logprobs: int | None = None,
        timeouts: Timeouts | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> ChatResponse:
        """Send a conversation and return the complete assistant reply."""

        request = self._chat_request(
            model,
            messages,
            stream=False,
            tools=tools,
            format=format,
            options=options,
            think=think,
            keep_alive=keep_alive,
            logprobs=logprobs,
            top_logprobs=top_logprobs,
        )
        return await self._call("POST", CHAT_PATH, request, ChatResponse, timeouts=timeouts, retry_policy=retry_policy)

    async def chat_stream(
        self,
        model: str,
        messages: Sequence[MessageInput],
        *,
        tools: Sequence[ToolInput] | None = None,
        format: FormatHint | None = None,
        options: Options | None = None,
        think: ThinkOption | None = None,
        keep_alive: str | None = None,
        logprobs: bool | None = None,
        top_logprobs: int | None = None,
        timeouts: Timeouts | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> NDJSONStream[ChatResponse]:
        """Send a conversation and stream the reply as it is generated."""

        request = self._chat_request(
            model,
            messages,
            stream=True,
            tools=tools,
            format=format,
            options=options,
            think=think,
            keep_alive=keep_alive,
            logprobs=logprobs,
            top_logprobs=top_logprobs,
        )
        return await self._open_stream(CHAT_PATH, request, ChatResponse, timeouts=timeouts, retry_policy=retry_policy)

    async def generate(
        self,
        model: str,
        prompt: str = "",
        *,
        suffix: str | None = None,
        images: Sequence[str] | None = None,
        format: FormatHint | None = None,
        system: str | None = None,
        template: str | None = None,
        options: Options | None = None,
        think: ThinkOption | None = None,
        keep_alive: str | None = None,
        raw: bool | None = None,
        logprobs: bool | None = None,
        top_logprobs: int | None = None,
        timeouts: Timeouts | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> GenerateResponse:
        """Complete ``prompt`` and return the whole completion."""

        request = self._generate_request(
            model,
            prompt,
            stream=False,
            suffix=suffix,
            images=images,
            format=format,
            system=system,
            template=template,
            options=options,
            think=think,
            keep_alive=keep_alive,
            raw=raw,
            logprobs=logprobs,
            top_logprobs=top_logprobs,
        )
        return await self._call(
            "POST", GENERATE_PATH, request, GenerateResponse, timeouts=timeouts, retry_policy=retry_policy
        )

    async def generate_stream(
        self,
        model: str,
        prompt: str = "",
        *,
        suffix: str | None = None,
        images: Sequence[str] | None = None,
        format: FormatHint | None = None,
        system: str | None = None,
        template: str | None = None,
        options: Options | None = None,
        think: ThinkOption | None = None,
        keep_alive: str | None = None,
        raw: bool | None = None,
        logprobs: bool | None = None,
        top_logprobs: int | None = None,
        timeouts: Timeouts | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> NDJSONStream[GenerateResponse]:
        """Complete ``prompt``, streaming the completion as it is generated."""

        request = self._generate_request(
            model,
            prompt,
            stream=True,
            suffix=suffix,
            images=images,
            format=format,
            system=system,
            template=template,
            options=options,
            think=think,
            keep_alive=keep_alive,
            raw=raw,
            logprobs=logprobs,
            top_logprobs=top_logprobs,
        )
        return await self._open_stream(
            GENERATE_PATH, request, GenerateResponse, timeouts=timeouts, retry_policy=retry_policy
        )

    async def embed(
        self,
        model: str,
        input: Union[str, Sequence[str]],
        *,
        truncate: bool | None = None,
        options: Options | None = None,
        keep_alive: str | None = None,
        timeouts: Timeouts | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> EmbedResponse:
        """Return one embedding vector per input text."""

        _require_model(model)
        texts: Union[str, List[str]] = input if isinstance(input, str) else list(input)
        request = _build(
            EmbedRequest,
            model=model,
            input=texts,
            truncate=truncate,
            options=merge_options(self._default_options, options),
            keep_alive=keep_alive,
        )
        return await self._call("POST", EMBED_PATH, request, EmbedResponse, timeouts=timeouts, retry_policy=retry_policy)

    # -- model management -----------------------------------------------

    async def list_models(
        self,
        *,
        timeouts: Timeouts | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> ListModelsResponse:
        """List the models available locally."""

        return await self._call("GET", TAGS_PATH, None, ListModelsResponse, timeouts=timeouts, retry_policy=retry_policy)

    async def list_running_models(
        self,
        *,
        timeouts: Timeouts | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> ListRunningModelsResponse:
        """List the models currently loaded in memory."""

        return await self._call(
            "GET", PS_PATH, None, ListRunningModelsResponse, timeouts=timeouts, retry_policy=retry_policy
        )

    async def show_model(
        self,
        model: str,
        *,
        verbose: bool = False,
        timeouts: Timeouts | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> ShowModelResponse:
        _require_model(model)
        request = _build(ShowModelRequest, model=model, verbose=verbose)
        return await self._call("POST", SHOW_PATH, request, ShowModelResponse, timeouts=timeouts, retry_policy=retry_policy)

    async def version(
        self,
        *,
        timeouts: Timeouts | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> str:
        """Return the server version string."""

        response = await self._call(
            "GET", VERSION_PATH, None, VersionResponse, timeouts=timeouts, retry_policy=retry_policy
        )
        return response.version

    async def create_model(
        self,
        model: str,
        *,
        from_: str | None = None,
        files: Mapping[str, str] | None = None,
        adapters: Mapping[str, str] | None = None,
        template: str | None = None,
        license: Union[str, Sequence[str], None] = None,
        system: str | None = None,
        parameters: Mapping[str, ParameterValue] | None = None,
        messages: Sequence[MessageInput] | None = None,
        quantize: str | None = None,
        timeouts: Timeouts | None = None,
    ) -> bool:
        """Create ``model`` from a base model, files or adapters.

        Returns ``True`` when the server reports success. The call is never
        retried.
        """

        _require_model(model)
        request = _build(
            CreateModelRequest,
            model=model,
            from_=from_,
            files=dict(files) if files is not None else None,
            adapters=dict(adapters) if adapters is not None else None,
            template=template,
            license=license if license is None or isinstance(license, str) else list(license),
            system=system,
            parameters=dict(parameters) if parameters is not None else None,
            messages=list(messages) if messages is not None else None,
            quantize=quantize,
            stream=False,
        )
        response = await self._send("POST", CREATE_PATH, request, timeouts=timeouts)
        return response.is_success and "success" in response.text

    async def copy_model(
        self,
        source: str,
        destination: str,
        *,
        base_path: Union[str, Path, None] = None,
        timeouts: Timeouts | None = None,
    ) -> bool:
        """Copy ``source`` to a new model named ``destination``.

        When ``base_path`` is given the directory is created locally before the
        request is sent. The call is never retried.
        """

        request = _build(CopyModelRequest, source=source, destination=destination)
        if base_path is not None:
            await _ensure_directory(Path(base_path))
        await self._send("POST", COPY_PATH, request, timeouts=timeouts)
        return True

    async def delete_model(
        self,
        model: str,
        *,
        timeouts: Timeouts | None = None,
    ) -> bool:
        """Delete a local model. The call is never retried."""

        _require_model(model)
        request = _build(DeleteModelRequest, model=model)
        await self._send("DELETE", DELETE_PATH, request, timeouts=timeouts)
        return True

    async def pull_model(
        self,
        model: str,
        *,
        insecure: bool = False,
        timeouts: Timeouts | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> NDJSONStream[PullProgress]:
        """Download ``model`` from the registry, streaming transfer progress."""

        _require_model(model)
        request = _build(PullRequest, model=model, insecure=insecure, stream=True)
        return await self._open_stream(PULL_PATH, request, PullProgress, timeouts=timeouts, retry_policy=retry_policy)

    async def push_model(
        self,
        model: str,
        *,
        path: Union[str, Path, None] = None,
        insecure: bool = False,
        timeouts: Timeouts | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> NDJSONStream[PushProgress]:
        """Upload ``model`` to the registry, streaming transfer progress.

        ``path``, when given, must name an existing local directory.
        """

        _require_model(model)
        if path is not None:
            await _require_directory(Path(path))
        request = _build(
            PushRequest,
            model=model,
            path=str(path) if path is not None else None,
            insecure=insecure,
            stream=True,
        )
        return await self._open_stream(PUSH_PATH, request, PushProgress, timeouts=timeouts, retry_policy=retry_policy)

    # -- internals ------------------------------------------------------

    def _chat_request(
        self,
        model: str,
        messages: Sequence[MessageInput],
        *,
        stream: bool,
        tools: Sequence[ToolInput] | None,
        options: Options | None,
        **fields: Any,
    ) -> ChatRequest:
        _require_model(model)
        if not messages:
            raise OllamaError.invalid_request("messages must not be empty")
        return _build(
            ChatRequest,
            model=model,
            messages=list(messages),
            tools=list(tools) if tools else None,
            options=merge_options(self._default_options, options),
            stream=stream,
            **fields,
        )

    def _generate_request(
        self,
        model: str,
        prompt: str,
        *,
        stream: bool,
        images: Sequence[str] | None,
        options: Options | None,
        **fields: Any,
    ) -> GenerateRequest:
        _require_model(model)
        return _build(
            GenerateRequest,
            model=model,
            prompt=prompt,
            images=list(images) if images is not None else None,
            options=merge_options(self._default_options, options),
            stream=stream,
            **fields,
        )

    async def _send(
        self,
        method: str,
        path: str,
        request: RequestModel | None,
        *,
        timeouts: Timeouts | None,
    ) -> httpx.Response:
        self._ensure_open()
        payload = request.to_payload() if request is not None else None
        return await self._http.request(method, path, json=payload, timeouts=timeouts)

    async def _call(
        self,
        method: str,
        path: str,
        request: RequestModel | None,
        response_type: Type[ModelT],
        *,
        timeouts: Timeouts | None,
        retry_policy: RetryPolicy | None,
    ) -> ModelT:
        async def attempt() -> ModelT:
            response = await self._send(method, path, request, timeouts=timeouts)
            return _parse(response, response_type)

        return await self._with_retry(attempt, retry_policy)

    async def _open_stream(
        self,
        path: str,
        request: RequestModel,
        record_type: Type[ModelT],
        *,
        timeouts: Timeouts | None,
        retry_policy: RetryPolicy | None,
    ) -> NDJSONStream[ModelT]:
        self._ensure_open()
        payload = request.to_payload()

        async def connect() -> StreamHandle:
            return await self._http.open_stream("POST", path, json=payload, timeouts=timeouts)

        handle = await self._with_retry(connect, retry_policy)
        LOGGER.debug("streaming %s from %s", record_type.__name__, path)
        return NDJSONStream.from_handle(handle, record_type)

    async def _with_retry(self, operation: Callable[[], Awaitable[Any]], policy: RetryPolicy | None) -> Any:
        return await retry(operation, policy=policy or self._http.config.retry, sleep=self._sleep)

    def _ensure_open(self) -> None:
        if self._http.closed:
            raise OllamaError.invalid_request("client is closed")


def _require_model(model: str) -> None:
    if not isinstance(model, str) or not model.strip():
        raise OllamaError.invalid_request("model must be a non-empty string")


def _build(request_type: Type[RequestT], **fields: Any) -> RequestT:
    try:
        return request_type(**fields)
    except ValidationError as exc:
        raise OllamaError.invalid_request(_describe_validation(exc), cause=exc) from exc


def _describe_validation(exc: ValidationError) -> str:
    details: List[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "request"
        details.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "Invalid request: " + "; ".join(details)


def _parse(response: httpx.Response, response_type: Type[ModelT]) -> ModelT:
    try:
        return response_type.model_validate_json(response.content)
    except ValidationError as exc:
        name = response_type.__name__
        raise OllamaError.serialization(f"Failed to parse {name} response", cause=exc) from exc


async def _ensure_directory(path: Path) -> None:
    try:
        await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)
    except OSError as exc:
        raise OllamaError.invalid_request(f"Could not create directory '{path}': {exc}", cause=exc) from exc


async def _require_directory(path: Path) -> None:
    if not await asyncio.to_thread(path.is_dir):
        raise OllamaError.invalid_request(f"Push path '{path}' is not an existing directory")


__all__ = ["OllamaClient"]
