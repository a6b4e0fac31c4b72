"""Base classes and small value types shared across endpoint models."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ThinkLevel = Literal["high", "medium", "low"]
ThinkOption = Union[bool, ThinkLevel]


class RequestModel(BaseModel):
    """Immutable request body; unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid", frozen=True, protected_namespaces=())

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON body sent on the wire, without absent fields."""

        return self.model_dump(mode="json", exclude_none=True, by_alias=True)


class ResponseModel(BaseModel):
    """Immutable response document; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore", frozen=True, protected_namespaces=())


class TopLogProb(ResponseModel):
    token: str
    logprob: float
    bytes: Optional[List[int]] = None


class LogProb(ResponseModel):
    """Log probability of a generated token and its strongest alternatives."""

    token: str
    logprob: float
    bytes: Optional[List[int]] = None
    top_logprobs: Optional[List[TopLogProb]] = None


class GenerationMetrics(ResponseModel):
    """Terminal metadata reported on the last record of a generation.

    Durations are in nanoseconds.
    """

    done: bool = Field(False, description="Whether this is the terminal record.")
    done_reason: Optional[str] = None
    total_duration: Optional[int] = None
    load_duration: Optional[int] = None
    prompt_eval_count: Optional[int] = None
    prompt_eval_duration: Optional[int] = None
    eval_count: Optional[int] = None
    eval_duration: Optional[int] = None

    @property
    def tokens_per_second(self) -> Optional[float]:
        if not self.eval_count or not self.eval_duration:
            return None
        return self.eval_count / (self.eval_duration / 1_000_000_000)


__all__ = [
    "GenerationMetrics",
    "LogProb",
    "RequestModel",
    "ResponseModel",
    "ThinkLevel",
    "ThinkOption",
    "TopLogProb",
]
