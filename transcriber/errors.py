"""
Error types raised by the transcription pipeline.

Every failure that can reach a caller is a :class:`TranscriptionError`
carrying an :class:`ErrorKind`.  The kind is decided once, where the failure
is first observed (for remote errors: when the response body is parsed), and
the rest of the pipeline only ever inspects that tag.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NETWORK = "network"
    INVALID_FORMAT = "invalid_format"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    API = "api"
    PROCESSING = "processing"
    CANCELLED = "cancelled"


_CATEGORIES = {
    ErrorKind.VALIDATION: "validation_error",
    ErrorKind.NETWORK: "network_error",
    ErrorKind.PROCESSING: "processing_error",
    ErrorKind.CANCELLED: "cancelled",
}


class TranscriptionError(Exception):
    """A structured, user-presentable transcription failure."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        *,
        code: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.code = code
        self.status = status

    @property
    def category(self) -> str:
        """Coarse category shown to users (remote failures are ``api_error``)."""
        return _CATEGORIES.get(self.kind, "api_error")

    @property
    def tolerable(self) -> bool:
        """True for per-chunk decode failures caused by byte splitting."""
        return self.kind is ErrorKind.INVALID_FORMAT

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "type": self.category, "code": self.code}


class CompressionError(Exception):
    """Raised when audio could not be re-encoded below the size limit.

    Never surfaced to callers: the pipeline falls back to chunking instead.
    """


def validation_error(message: str) -> TranscriptionError:
    return TranscriptionError(message, ErrorKind.VALIDATION)
