"""Embedding endpoint models."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import Field

from .common import RequestModel, ResponseModel
from .options import Options, apply_options


class EmbedRequest(RequestModel):
    """Body of ``POST /api/embed``."""

    model: str = Field(..., min_length=1)
    input: Union[str, List[str]]
    truncate: Optional[bool] = None
    options: Optional[Options] = None
    keep_alive: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return apply_options(super().to_payload(), self.options)


class EmbedResponse(ResponseModel):
    model: str
    embeddings: List[List[float]] = Field(default_factory=list)
    total_duration: Optional[int] = None
    load_duration: Optional[int] = None
    prompt_eval_count: Optional[int] = None


__all__ = ["EmbedRequest", "EmbedResponse"]
