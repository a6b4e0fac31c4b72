"""Chat endpoint models."""

from __future__ import annotations

from enum import Enum
from collections.abc import Mapping
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import GenerationMetrics, LogProb, RequestModel, ThinkOption
from .options import FormatHint, Options, apply_options


class Role(str, Enum):
    """Author of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCallFunction(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class ToolCall(BaseModel):
    """A function invocation requested by the assistant."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    function: ToolCallFunction


class ChatMessage(BaseModel):
    """A single conversation turn, used both in requests and responses."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    role: Role
    content: str = ""
    images: Optional[List[str]] = Field(None, description="Base64 encoded images attached to the message.")
    thinking: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    tool_name: Optional[str] = Field(None, description="Name of the tool whose output this message carries.")

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str, *, images: Optional[List[str]] = None) -> "ChatMessage":
        return cls(role=Role.USER, content=content, images=images)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def tool(cls, content: str, *, tool_name: Optional[str] = None) -> "ChatMessage":
        return cls(role=Role.TOOL, content=content, tool_name=tool_name)


def check_message_fields(messages: Any) -> Any:
    """Reject mapping messages carrying keys that ``ChatMessage`` does not define.

    Response messages ignore unknown fields, so requests check them here.
    """

    if not isinstance(messages, (list, tuple)):
        return messages
    known = ChatMessage.model_fields
    for message in messages:
        if not isinstance(message, Mapping):
            continue
        unknown = sorted(str(key) for key in message if key not in known)
        if unknown:
            msg = f"unknown message field(s): {', '.join(unknown)}"
            raise ValueError(msg)
    return messages


class ToolFunction(BaseModel):
    """Declaration of a callable tool exposed to the model."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = Field(None, description="JSON schema describing the arguments.")


class ChatTool(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["function"] = "function"
    function: ToolFunction


class ChatRequest(RequestModel):
    """Body of ``POST /api/chat``."""

    model: str = Field(..., min_length=1)
    messages: List[ChatMessage] = Field(..., min_length=1)
    tools: Optional[List[ChatTool]] = None
    format: Optional[FormatHint] = None
    options: Optional[Options] = None
    stream: bool = True
    think: Optional[ThinkOption] = None
    keep_alive: Optional[str] = None
    logprobs: Optional[bool] = None
    top_logprobs: Optional[int] = Field(None, ge=0)

    @field_validator("messages", mode="before")
    @classmethod
    def known_message_fields(cls, value: Any) -> Any:
        return check_message_fields(value)

    def to_payload(self) -> Dict[str, Any]:
        return apply_options(super().to_payload(), self.options)


class ChatResponse(GenerationMetrics):
    """One record of a chat reply; the whole reply when not streaming."""

    model: str
    created_at: Optional[str] = None
    message: ChatMessage
    logprobs: Optional[List[LogProb]] = None

    @property
    def content(self) -> str:
        return self.message.content


__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ChatTool",
    "Role",
    "ToolCall",
    "ToolCallFunction",
    "ToolFunction",
]
