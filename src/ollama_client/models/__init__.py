"""Typed request and response models for the Ollama HTTP API."""

from __future__ import annotations

from .chat import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatTool,
    Role,
    ToolCall,
    ToolCallFunction,
    ToolFunction,
)
from .common import GenerationMetrics, LogProb, RequestModel, ResponseModel, ThinkOption, TopLogProb
from .embed import EmbedRequest, EmbedResponse
from .generate import GenerateRequest, GenerateResponse
from .manage import (
    CopyModelRequest,
    CreateModelRequest,
    DeleteModelRequest,
    ListModelsResponse,
    ListRunningModelsResponse,
    ModelDetails,
    ModelInfo,
    ParameterValue,
    PullProgress,
    PullRequest,
    PullStatus,
    PushProgress,
    PushRequest,
    PushStatus,
    RunningModelInfo,
    ShowModelRequest,
    ShowModelResponse,
    VersionResponse,
)
from .options import FormatHint, Options, ResponseFormat, apply_options, merge_options

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ChatTool",
    "CopyModelRequest",
    "CreateModelRequest",
    "DeleteModelRequest",
    "EmbedRequest",
    "EmbedResponse",
    "FormatHint",
    "GenerateRequest",
    "GenerateResponse",
    "GenerationMetrics",
    "ListModelsResponse",
    "ListRunningModelsResponse",
    "LogProb",
    "ModelDetails",
    "ModelInfo",
    "Options",
    "ParameterValue",
    "PullProgress",
    "PullRequest",
    "PullStatus",
    "PushProgress",
    "PushRequest",
    "PushStatus",
    "RequestModel",
    "ResponseFormat",
    "ResponseModel",
    "Role",
    "RunningModelInfo",
    "ShowModelRequest",
    "ShowModelResponse",
    "ThinkOption",
    "ToolCall",
    "ToolCallFunction",
    "ToolFunction",
    "TopLogProb",
    "VersionResponse",
    "apply_options",
    "merge_options",
]
