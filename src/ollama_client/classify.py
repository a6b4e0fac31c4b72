"""Translate HTTP responses and transport faults into :class:`OllamaError`."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import httpx
from pydantic import ValidationError

from .errors import OllamaError

LOGGER = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error"
DEFAULT_MISSING_RESOURCE = "model not found"
NOT_FOUND_MESSAGE = "Model not found"

_UNSUPPORTED_MARKER = "does not support"
_QUOTED_MODEL = re.compile(r"""model\s+["'`]([^"'`]+)["'`]""", re.IGNORECASE)


def classify_response(status_code: int, body: bytes | str | None = None) -> OllamaError:
    """Classify an unsuccessful response into exactly one :class:`OllamaError`.

    The body may be a JSON envelope ``{"error": "..."}``, plain text, or absent.
    Classification never raises; unexpected failures degrade to an ``UNKNOWN``
    error that keeps the original message.
    """

    text: str | None = None
    try:
        text = _decode_body(body)
        envelope_error = _parse_error_envelope(text)
        message = envelope_error or text or UNKNOWN_ERROR_MESSAGE

        if _UNSUPPORTED_MARKER in message.lower():
            return OllamaError.unsupported(message)

        if status_code == 404:
            return _not_found(envelope_error or text or NOT_FOUND_MESSAGE, envelope_error)

        if status_code == 400:
            return OllamaError.invalid_request(message)

        return OllamaError.http(status_code, message)
    except Exception as exc:  # pragma: no cover - classification must not raise
        LOGGER.debug("failed to classify response with status %s", status_code, exc_info=True)
        return OllamaError.unknown(text or UNKNOWN_ERROR_MESSAGE, cause=exc)


async def raise_for_status(response: httpx.Response) -> None:
    """Raise the classified error for a non-2xx ``response``."""

    if response.is_success:
        return

    try:
        body: bytes | None = await response.aread()
    except Exception:  # body unavailable; classify from the status alone
        LOGGER.debug("could not read error body for status %s", response.status_code, exc_info=True)
        body = None
    raise classify_response(response.status_code, body)


def map_fault(exc: BaseException) -> OllamaError:
    """Map a low-level fault into the error taxonomy.

    Already classified errors pass through unchanged, which makes the mapping
    idempotent.
    """

    if isinstance(exc, OllamaError):
        return exc

    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return OllamaError.timeout("Request timed out", cause=exc)

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 404:
            return OllamaError.not_found(DEFAULT_MISSING_RESOURCE, message=str(exc), cause=exc)
        if 400 <= status < 500:
            return OllamaError.invalid_request(str(exc), cause=exc)
        return OllamaError.http(status, str(exc), cause=exc)

    if isinstance(exc, (httpx.DecodingError, json.JSONDecodeError, ValidationError)):
        return OllamaError.serialization("Failed to parse response", cause=exc)

    if isinstance(exc, httpx.InvalidURL):
        return OllamaError.invalid_request(f"Invalid URL: {exc}", cause=exc)

    if isinstance(exc, (httpx.TransportError, httpx.RequestError, OSError)):
        return OllamaError.network(f"Network error: {exc}", cause=exc)

    return OllamaError.unknown(str(exc) or type(exc).__name__, cause=exc)


def _decode_body(body: bytes | str | None) -> str | None:
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray)):
        text = bytes(body).decode("utf-8", errors="replace")
    else:
        text = str(body)
    text = text.strip()
    return text or None


def _parse_error_envelope(text: str | None) -> str | None:
    if not text:
        return None
    try:
        payload: Any = json.loads(text)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if error is None:
        return None
    if isinstance(error, str):
        return error or None
    return json.dumps(error)


def _not_found(message: str, envelope_error: str | None) -> OllamaError:
    match = _QUOTED_MODEL.search(message)
    if match:
        return OllamaError.not_found(match.group(1))
    # No model name to quote; keep what the server said.
    return OllamaError.not_found(envelope_error or DEFAULT_MISSING_RESOURCE, message=message)


__all__ = [
    "DEFAULT_MISSING_RESOURCE",
    "NOT_FOUND_MESSAGE",
    "UNKNOWN_ERROR_MESSAGE",
    "classify_response",
    "map_fault",
    "raise_for_status",
]
