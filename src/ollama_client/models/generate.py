"""Text generation endpoint models."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field

from .common import GenerationMetrics, LogProb, RequestModel, ThinkOption
from .options import FormatHint, Options, apply_options


class GenerateRequest(RequestModel):
    """Body of ``POST /api/generate``."""

    model: str = Field(..., min_length=1)
    prompt: str = ""
    suffix: Optional[str] = None
    images: Optional[List[str]] = None
    format: Optional[FormatHint] = None
    system: Optional[str] = None
    template: Optional[str] = None
    options: Optional[Options] = None
    stream: bool = True
    think: Optional[ThinkOption] = None
    keep_alive: Optional[str] = None
    raw: Optional[bool] = None
    logprobs: Optional[bool] = None
    top_logprobs: Optional[int] = Field(None, ge=0)

    def to_payload(self) -> Dict[str, Any]:
        return apply_options(super().to_payload(), self.options)


class GenerateResponse(GenerationMetrics):
    """One record of a completion; the whole completion when not streaming."""

    model: str
    created_at: Optional[str] = None
    response: str = ""
    thinking: Optional[str] = None
    context: Optional[List[int]] = None
    logprobs: Optional[List[LogProb]] = None


__all__ = ["GenerateRequest", "GenerateResponse"]
