"""Sampling and decoding parameters shared by chat and generation requests."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ResponseFormat(str, Enum):
    """Structured output modes understood by the server."""

    JSON = "json"


FormatHint = Union[ResponseFormat, Dict[str, Any]]


class Options(BaseModel):
    """Immutable bag of optional sampling parameters.

    Every field is optional; an absent field (``None``) lets the server apply
    its model default.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    seed: Optional[int] = Field(None, description="Random seed for reproducible sampling.")
    temperature: Optional[float] = Field(None, ge=0, description="Sampling temperature.")
    top_k: Optional[int] = Field(None, ge=0, description="Restrict sampling to the k most likely tokens.")
    top_p: Optional[float] = Field(None, ge=0, le=1, description="Nucleus sampling probability mass.")
    min_p: Optional[float] = Field(None, ge=0, le=1, description="Minimum token probability relative to the best token.")
    stop: Optional[Union[str, List[str]]] = Field(None, description="Sequence(s) that end generation.")
    num_ctx: Optional[int] = Field(None, gt=0, description="Context window size in tokens.")
    num_predict: Optional[int] = Field(None, description="Maximum number of tokens to generate (-1 for unlimited).")
    format: Optional[FormatHint] = Field(None, description="Response format hint, lifted to the request's top-level 'format'.")

    def present_fields(self) -> Dict[str, Any]:
        """Return the fields that carry a value."""

        return {name: getattr(self, name) for name in type(self).model_fields if getattr(self, name) is not None}

    def merge(self, override: "Options | None") -> "Options":
        """Layer ``override`` on top of this instance.

        For every field the override's value wins when present, otherwise this
        instance's value is kept. Neither operand is modified.
        """

        if override is None:
            return self
        combined = {**self.present_fields(), **override.present_fields()}
        return type(self)(**combined)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for the request's ``options`` object.

        ``format`` is not a sampling option on the wire and is excluded.
        """

        return self.model_dump(mode="json", exclude_none=True, exclude={"format"})


def apply_options(payload: Dict[str, Any], options: Options | None) -> Dict[str, Any]:
    """Write ``options`` into a serialized request body.

    Sampling fields go under ``options``; a format hint is lifted to the
    top-level ``format`` field unless the request already sets one.
    """

    payload.pop("options", None)
    if options is None:
        return payload
    sampling = options.to_payload()
    if sampling:
        payload["options"] = sampling
    if "format" not in payload and options.format is not None:
        payload["format"] = options.model_dump(mode="json", include={"format"})["format"]
    return payload


def merge_options(base: Options | None, *overrides: Options | None) -> Options | None:
    """Apply ``overrides`` left to right on top of ``base``."""

    result = base
    for override in overrides:
        if override is None:
            continue
        result = override if result is None else result.merge(override)
    return result


__all__ = ["FormatHint", "Options", "ResponseFormat", "apply_options", "merge_options"]
