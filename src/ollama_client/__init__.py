"""Asynchronous client for a local Ollama inference server.

The package exposes a typed :class:`OllamaClient` for chat, text generation,
embeddings and model management, a lazy NDJSON stream decoder for the
streaming endpoints, and a single classified :class:`OllamaError` raised by
every operation.
"""

from __future__ import annotations

from .classify import classify_response, map_fault
from .client import OllamaClient
from .config import DEFAULT_BASE_URL, ClientConfig, Timeouts
from .errors import ErrorKind, OllamaError
from .models import (
    ChatMessage,
    ChatResponse,
    ChatTool,
    EmbedResponse,
    GenerateResponse,
    ListModelsResponse,
    ListRunningModelsResponse,
    Options,
    PullProgress,
    PushProgress,
    ResponseFormat,
    Role,
    ShowModelResponse,
    ToolFunction,
    merge_options,
)
from .retry import RetryPolicy, retry
from .stream import DecodeFailure, NDJSONStream, StreamState, collect

__all__ = [
    "ChatMessage",
    "ChatResponse",
    "ChatTool",
    "ClientConfig",
    "DEFAULT_BASE_URL",
    "DecodeFailure",
    "EmbedResponse",
    "ErrorKind",
    "GenerateResponse",
    "ListModelsResponse",
    "ListRunningModelsResponse",
    "NDJSONStream",
    "OllamaClient",
    "OllamaError",
    "Options",
    "PullProgress",
    "PushProgress",
    "ResponseFormat",
    "RetryPolicy",
    "Role",
    "ShowModelResponse",
    "StreamState",
    "Timeouts",
    "ToolFunction",
    "classify_response",
    "collect",
    "map_fault",
    "merge_options",
    "retry",
]

__version__ = "0.1.0"
