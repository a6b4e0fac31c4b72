"""Closed error taxonomy raised by every public client operation."""

from __future__ import annotations

from enum import Enum

_RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


class ErrorKind(str, Enum):
    """Tag identifying which variant of :class:`OllamaError` was raised."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    SERIALIZATION = "serialization"
    INVALID_REQUEST = "invalid_request"
    NOT_FOUND = "not_found"
    UNSUPPORTED = "unsupported"
    HTTP = "http"
    UNKNOWN = "unknown"


_PERMANENT_KINDS = frozenset(
    {
        ErrorKind.SERIALIZATION,
        ErrorKind.INVALID_REQUEST,
        ErrorKind.NOT_FOUND,
        ErrorKind.UNSUPPORTED,
    }
)


class OllamaError(RuntimeError):
    """A classified failure.

    The exception is a tagged variant rather than a class hierarchy: ``kind``
    names the variant and only the payload attributes belonging to that variant
    are populated.

    Attributes
    ----------
    kind:
        The :class:`ErrorKind` tag.
    message:
        Human readable description.
    cause:
        The low-level exception this error was classified from, if any.
    resource:
        Name of the missing resource (``NOT_FOUND``).
    reason:
        Why the server refused the operation (``UNSUPPORTED``).
    status_code, body:
        HTTP status and resolved response message (``HTTP``).
    raw_line:
        The undecodable line (``SERIALIZATION`` raised while streaming).
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        cause: BaseException | None = None,
        resource: str | None = None,
        reason: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
        raw_line: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.cause = cause
        self.resource = resource
        self.reason = reason
        self.status_code = status_code
        self.body = body
        self.raw_line = raw_line
        if cause is not None and self.__cause__ is None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        return f"OllamaError(kind={self.kind.value!r}, message={self.message!r})"

    @property
    def is_permanent(self) -> bool:
        """Whether re-issuing the same request can never succeed."""

        if self.kind in _PERMANENT_KINDS:
            return True
        if self.kind is ErrorKind.HTTP and self.status_code is not None:
            return 400 <= self.status_code < 500 and self.status_code not in _RETRYABLE_CLIENT_STATUSES
        return False

    @property
    def is_transient(self) -> bool:
        return not self.is_permanent

    @classmethod
    def network(
        cls,
        message: str = "Network error occurred while calling Ollama API",
        *,
        cause: BaseException | None = None,
    ) -> "OllamaError":
        return cls(ErrorKind.NETWORK, message, cause=cause)

    @classmethod
    def timeout(
        cls,
        message: str = "Ollama request timed out",
        *,
        cause: BaseException | None = None,
    ) -> "OllamaError":
        return cls(ErrorKind.TIMEOUT, message, cause=cause)

    @classmethod
    def serialization(
        cls,
        message: str = "Failed to serialize or deserialize Ollama response",
        *,
        raw_line: str | None = None,
        cause: BaseException | None = None,
    ) -> "OllamaError":
        return cls(ErrorKind.SERIALIZATION, message, raw_line=raw_line, cause=cause)

    @classmethod
    def invalid_request(
        cls,
        message: str,
        *,
        cause: BaseException | None = None,
    ) -> "OllamaError":
        return cls(ErrorKind.INVALID_REQUEST, message, cause=cause)

    @classmethod
    def not_found(
        cls,
        resource: str,
        *,
        message: str | None = None,
        cause: BaseException | None = None,
    ) -> "OllamaError":
        return cls(
            ErrorKind.NOT_FOUND,
            message or f"Model '{resource}' was not found",
            resource=resource,
            cause=cause,
        )

    @classmethod
    def unsupported(
        cls,
        reason: str,
        *,
        cause: BaseException | None = None,
    ) -> "OllamaError":
        return cls(ErrorKind.UNSUPPORTED, reason, reason=reason, cause=cause)

    @classmethod
    def http(
        cls,
        status_code: int,
        body: str | None = None,
        *,
        cause: BaseException | None = None,
    ) -> "OllamaError":
        message = f"HTTP {status_code} error from Ollama API: {body or 'No response body'}"
        return cls(
            ErrorKind.HTTP,
            message,
            status_code=status_code,
            body=body,
            cause=cause,
        )

    @classmethod
    def unknown(
        cls,
        message: str,
        *,
        cause: BaseException | None = None,
    ) -> "OllamaError":
        return cls(ErrorKind.UNKNOWN, f"Unexpected error: {message}", cause=cause)


__all__ = ["ErrorKind", "OllamaError"]
