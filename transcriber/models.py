"""
Data types shared across the transcription pipeline.

Audio travels through the pipeline as in-memory bytes: an uploaded
:class:`AudioFile` is either sent as-is, replaced by a compressed copy, or
sliced into :class:`AudioChunk` objects.  Progress is reported as
:class:`BatchProgress` snapshots and the final answer is a
:class:`TranscriptionResult`.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePath
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class AudioFile:
    """An audio upload held in memory."""

    name: str
    data: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        """Lower-case extension without the dot; ``mp3`` when missing."""
        suffix = PurePath(self.name).suffix.lower().lstrip(".")
        return suffix or "mp3"


@dataclass(frozen=True)
class TranscriptionRequest:
    """Parameters for one transcription call."""

    file: AudioFile
    model: str = "whisper-1"
    language: Optional[str] = None
    temperature: Optional[float] = None
    response_format: Optional[str] = None

    def with_file(self, file: AudioFile) -> "TranscriptionRequest":
        """Return a copy of this request targeting another file."""
        return replace(self, file=file)


@dataclass(frozen=True)
class AudioChunk:
    """A contiguous byte-range slice of a source file.

    ``start_time`` and ``duration`` are nominal: they come from dividing the
    total duration evenly, not from decoding the slice.
    """

    source_name: str
    index: int
    start_time: float
    duration: float
    data: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    @property
    def file_name(self) -> str:
        source = PurePath(self.source_name)
        extension = source.suffix.lstrip(".") or "mp3"
        return f"{source.stem}_chunk_{self.index + 1}.{extension}"

    def as_file(self) -> AudioFile:
        return AudioFile(name=self.file_name, data=self.data, content_type=self.content_type)


class Phase(str, Enum):
    ANALYZING = "analyzing"
    CHUNKING = "chunking"
    PROCESSING = "processing"
    COMBINING = "combining"

    @property
    def order(self) -> int:
        return _PHASE_ORDER.index(self)


_PHASE_ORDER = [Phase.ANALYZING, Phase.CHUNKING, Phase.PROCESSING, Phase.COMBINING]


@dataclass(frozen=True)
class BatchProgress:
    phase: Phase
    current_chunk: int
    total_chunks: int
    progress: float
    estimated_time_remaining: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialise using the camelCase keys the UI expects."""
        data: Dict[str, Any] = {
            "phase": self.phase.value,
            "currentChunk": self.current_chunk,
            "totalChunks": self.total_chunks,
            "progress": self.progress,
        }
        if self.estimated_time_remaining is not None:
            data["estimatedTimeRemaining"] = self.estimated_time_remaining
        return data


class RouteTaken(str, Enum):
    DIRECT = "direct"
    COMPRESSED = "compressed"
    CHUNKED = "chunked"


@dataclass(frozen=True)
class TranscriptionOutcome:
    """Per-chunk transcripts aligned with chunk indices, plus their join."""

    transcripts: List[str]
    text: str


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TranscriptionResult:
    text: str
    audio_file_name: str
    route: RouteTaken
    outcome: TranscriptionOutcome
    language: Optional[str] = None
    duration: Optional[float] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "audio_file_name": self.audio_file_name,
            "language": self.language,
            "duration": self.duration,
            "route": self.route.value,
            "chunk_transcripts": list(self.outcome.transcripts),
            "created_at": self.created_at.isoformat(),
        }
