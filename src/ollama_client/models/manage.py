"""Model management endpoint models: pull, push, create, copy, delete, list, show."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, field_validator

from .chat import ChatMessage, check_message_fields
from .common import RequestModel, ResponseModel

ParameterScalar = Union[StrictBool, StrictInt, StrictFloat, StrictStr]
ParameterValue = Union[ParameterScalar, List[ParameterScalar]]

_TERMINAL_STATUSES = frozenset({"done", "success"})


class PullStatus(str, Enum):
    """Well-known phases reported while pulling a model."""

    QUEUED = "queued"
    PULLING = "pulling"
    VERIFYING = "verifying"
    WRITING = "writing"
    SUCCESS = "success"
    DONE = "done"
    ERROR = "error"
    UNKNOWN = "unknown"


class PushStatus(str, Enum):
    """Well-known phases reported while pushing a model."""

    QUEUED = "queued"
    PUSHING = "pushing"
    RETRIEVING = "retrieving"
    SUCCESS = "success"
    DONE = "done"
    ERROR = "error"
    UNKNOWN = "unknown"


class _Progress(ResponseModel):
    status: str
    message: Optional[str] = None
    digest: Optional[str] = None
    total: Optional[int] = None
    completed: Optional[int] = None
    progress: Optional[float] = None

    @property
    def done(self) -> bool:
        """Whether this is the terminal record of the transfer."""

        return self.status.strip().lower() in _TERMINAL_STATUSES

    @property
    def fraction(self) -> Optional[float]:
        """Completion ratio between 0 and 1, when known."""

        if self.progress is not None:
            return self.progress
        if self.total and self.completed is not None:
            return min(self.completed / self.total, 1.0)
        return None

    def _state_word(self) -> str:
        words = self.status.strip().lower().split()
        return words[0] if words else ""


class PullProgress(_Progress):
    """One progress record of ``POST /api/pull``."""

    @property
    def state(self) -> PullStatus:
        word = self._state_word()
        try:
            return PullStatus(word)
        except ValueError:
            return PullStatus.UNKNOWN


class PushProgress(_Progress):
    """One progress record of ``POST /api/push``."""

    @property
    def state(self) -> PushStatus:
        word = self._state_word()
        try:
            return PushStatus(word)
        except ValueError:
            return PushStatus.UNKNOWN


class PullRequest(RequestModel):
    model: str = Field(..., min_length=1)
    insecure: bool = False
    stream: bool = True


class PushRequest(RequestModel):
    model: str = Field(..., min_length=1)
    path: Optional[str] = None
    insecure: bool = False
    stream: bool = True


class CreateModelRequest(RequestModel):
    """Body of ``POST /api/create``."""

    model_config = ConfigDict(populate_by_name=True)

    model: str = Field(..., min_length=1)
    from_: Optional[str] = Field(None, alias="from")
    files: Optional[Dict[str, str]] = None
    adapters: Optional[Dict[str, str]] = None
    template: Optional[str] = None
    license: Optional[Union[str, List[str]]] = None
    system: Optional[str] = None
    parameters: Optional[Dict[str, ParameterValue]] = None
    messages: Optional[List[ChatMessage]] = None
    quantize: Optional[str] = None
    stream: bool = False

    @field_validator("messages", mode="before")
    @classmethod
    def known_message_fields(cls, value: Any) -> Any:
        return check_message_fields(value)


class CopyModelRequest(RequestModel):
    source: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)


class DeleteModelRequest(RequestModel):
    model: str = Field(..., min_length=1)


class ShowModelRequest(RequestModel):
    model: str = Field(..., min_length=1)
    verbose: bool = False


class ModelDetails(ResponseModel):
    parent_model: Optional[str] = None
    format: Optional[str] = None
    family: Optional[str] = None
    families: Optional[List[str]] = None
    parameter_size: Optional[str] = None
    quantization_level: Optional[str] = None


class ShowModelResponse(ResponseModel):
    """Details, template and metadata of a local model."""

    modelfile: Optional[str] = None
    parameters: Optional[str] = None
    template: Optional[str] = None
    system: Optional[str] = None
    license: Optional[str] = None
    capabilities: Optional[List[str]] = None
    modified_at: Optional[str] = None
    details: Optional[ModelDetails] = None
    model_info: Optional[Dict[str, Any]] = None

    def supports(self, capability: str) -> bool:
        return capability in (self.capabilities or [])


class ModelInfo(ResponseModel):
    """A locally available model, as listed by ``GET /api/tags``."""

    name: str
    model: Optional[str] = None
    modified_at: Optional[str] = None
    size: Optional[int] = None
    digest: Optional[str] = None
    details: Optional[ModelDetails] = None


class ListModelsResponse(ResponseModel):
    models: List[ModelInfo] = Field(default_factory=list)

    def names(self) -> List[str]:
        return [info.name for info in self.models]


class RunningModelInfo(ResponseModel):
    """A model currently loaded in memory, as listed by ``GET /api/ps``."""

    name: str
    model: Optional[str] = None
    size: Optional[int] = None
    digest: Optional[str] = None
    details: Optional[ModelDetails] = None
    expires_at: Optional[str] = None
    size_vram: Optional[int] = None
    context_length: Optional[int] = None


class ListRunningModelsResponse(ResponseModel):
    models: List[RunningModelInfo] = Field(default_factory=list)


class VersionResponse(ResponseModel):
    version: str


__all__ = [
    "CopyModelRequest",
    "CreateModelRequest",
    "DeleteModelRequest",
    "ListModelsResponse",
    "ListRunningModelsResponse",
    "ModelDetails",
    "ModelInfo",
    "ParameterValue",
    "PullProgress",
    "PullRequest",
    "PullStatus",
    "PushProgress",
    "PushRequest",
    "PushStatus",
    "RunningModelInfo",
    "ShowModelRequest",
    "ShowModelResponse",
    "VersionResponse",
]
