"""Error taxonomy for the Gemini files client.

Every failure surfaced by this package is a :class:`GeminiError` subclass.
Underlying causes (``OSError``, ``httpx`` errors, pydantic validation
errors) are chained with ``raise ... from`` so callers can inspect them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class GeminiError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(GeminiError):
    """Raised when a client configuration is missing or invalid."""


class InvalidOptions(GeminiError, ValueError):
    """Raised when upload options fail validation."""


class LocalIOError(GeminiError):
    """Raised when a local file cannot be stat'ed or read."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class ProtocolViolation(GeminiError):
    """Raised when a response breaks the resumable upload handshake."""


class RemoteError(GeminiError):
    """Raised when the service answers with a non-200 status.

    Attributes:
        status: HTTP status code.
        body: Decoded JSON body, or raw bytes when the body was not JSON.
        phase: Which step produced the response (``initiate``, ``transfer``,
            ``get``...), for diagnostics.
    """

    def __init__(self, status: int, body: Any, phase: str | None = None) -> None:
        self.status = status
        self.body = body
        self.phase = phase
        where = f" during {phase}" if phase else ""
        super().__init__(f"HTTP {status}{where}: {body!r}")


class TransportError(GeminiError):
    """Raised when a request could not be completed (DNS, connect, timeout)."""


class MalformedResponse(GeminiError):
    """Raised when a response payload cannot be normalized."""


class UploadCrashed(GeminiError):
    """Raised by the batch orchestrator when a session died unexpectedly.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        super().__init__(f"upload of {self.path} crashed")


class FileProcessingFailed(GeminiError):
    """Raised when the service reports an uploaded file as ``FAILED``."""

    def __init__(self, descriptor: Any) -> None:
        self.descriptor = descriptor
        super().__init__(f"File processing failed: {descriptor.name}")
