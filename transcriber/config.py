"""
Runtime configuration for the transcription pipeline.

All settings are read from environment variables so the same code can run
locally, in a container, or behind the HTTP entrypoint without changes:

* ``TRANSCRIBER_API_BASE_URL`` – Base URL of the transcription API.
* ``TRANSCRIBER_MODEL`` – Default model identifier sent with each request.
* ``TRANSCRIBER_MAX_FILE_SIZE`` – Per-request size limit in bytes.
* ``TRANSCRIBER_MAX_CHUNK_SIZE`` – Target chunk size in bytes (defaults to
  the per-request limit).
* ``TRANSCRIBER_MIN_CHUNK_SIZE`` – Chunks smaller than this are never sent.
* ``TRANSCRIBER_ENABLE_COMPRESSION`` – Set to ``false`` to go straight to
  chunking for oversized files.
* ``TRANSCRIBER_COMPRESSION_BITRATE`` – Target bitrate for re-encoding.
* ``TRANSCRIBER_MAX_WORKERS`` – Concurrent chunk submissions (1 = sequential).
* ``TRANSCRIBER_REQUEST_TIMEOUT`` – HTTP timeout in seconds.
* ``TRANSCRIBER_RATE_LIMIT_RETRIES`` – Extra attempts on rate-limit replies.
* ``FFMPEG_BINARY_PATH`` – ffmpeg executable used by the encoder.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from typing import Optional

DEFAULT_MAX_FILE_SIZE = 25 * 1024 * 1024
DEFAULT_MIN_CHUNK_SIZE = 1000


def _getenv_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return int(value)


def _getenv_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return float(value)


def _getenv_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    api_base_url: str = "https://api.openai.com/v1"
    model: str = "whisper-1"
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_chunk_size: Optional[int] = None
    min_chunk_size: int = DEFAULT_MIN_CHUNK_SIZE
    compression_enabled: bool = True
    compression_bitrate: str = "12k"
    max_workers: int = 1
    request_timeout: float = 600.0
    rate_limit_retries: int = 0
    ffmpeg_binary: str = "ffmpeg"

    @property
    def chunk_size(self) -> int:
        """Byte budget per chunk; falls back to the per-request limit."""
        return self.max_chunk_size or self.max_file_size


def load_settings() -> Settings:
    """Build :class:`Settings` from the current environment."""
    max_chunk_size = _getenv_int("TRANSCRIBER_MAX_CHUNK_SIZE", 0)
    return Settings(
        api_base_url=os.environ.get(
            "TRANSCRIBER_API_BASE_URL", "https://api.openai.com/v1"
        ).rstrip("/"),
        model=os.environ.get("TRANSCRIBER_MODEL", "whisper-1"),
        max_file_size=_getenv_int("TRANSCRIBER_MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE),
        max_chunk_size=max_chunk_size or None,
        min_chunk_size=_getenv_int("TRANSCRIBER_MIN_CHUNK_SIZE", DEFAULT_MIN_CHUNK_SIZE),
        compression_enabled=_getenv_bool("TRANSCRIBER_ENABLE_COMPRESSION", True),
        compression_bitrate=os.environ.get("TRANSCRIBER_COMPRESSION_BITRATE", "12k"),
        max_workers=max(1, _getenv_int("TRANSCRIBER_MAX_WORKERS", 1)),
        request_timeout=_getenv_float("TRANSCRIBER_REQUEST_TIMEOUT", 600.0),
        rate_limit_retries=max(0, _getenv_int("TRANSCRIBER_RATE_LIMIT_RETRIES", 0)),
        ffmpeg_binary=os.environ.get(
            "FFMPEG_BINARY_PATH", shutil.which("ffmpeg") or "ffmpeg"
        ),
    )
