"""
Split oversized uploads into byte-range chunks.

Chunks are cut at raw byte offsets, not at frame or silence boundaries, so
a chunk may not decode as standalone media.  The batch transcriber tolerates
the resulting format errors chunk by chunk.  Each chunk is given a nominal
``start_time``/``duration`` from an even split of the total duration; for
variable-bitrate sources these can drift from the audio actually inside the
slice.

The byte split itself never needs the duration.  When it cannot be probed
(ffprobe missing, unreadable container) the duration is estimated from the
file size at :data:`ASSUMED_BITRATE` instead.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional

from .audio_processor import probe_duration
from .config import DEFAULT_MAX_FILE_SIZE
from .errors import ErrorKind, TranscriptionError
from .models import AudioChunk, AudioFile, Phase
from .progress import ProgressReporter

logger = logging.getLogger(__name__)

DurationProbe = Callable[[AudioFile], float]

# bits per second; a typical speech MP3
ASSUMED_BITRATE = 128_000


def estimate_duration(size_bytes: int, bitrate: int = ASSUMED_BITRATE) -> float:
    """Nominal playback duration of ``size_bytes`` at a constant ``bitrate``."""
    return size_bytes * 8 / bitrate


def plan_chunk_count(size_bytes: int, max_chunk_size: int) -> int:
    """Number of chunks needed so none exceeds ``max_chunk_size`` bytes."""
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")
    return max(1, math.ceil(size_bytes / max_chunk_size))


def split_bytes(
    file: AudioFile, chunk_count: int, total_duration: float
) -> List[AudioChunk]:
    """Cut ``file`` into ``chunk_count`` contiguous slices.

    Every slice is ``floor(size / chunk_count)`` bytes except the last, which
    absorbs the remainder, so the slices partition the original exactly.
    """
    if chunk_count < 1:
        raise ValueError("chunk_count must be at least 1")
    byte_size = file.size // chunk_count
    chunk_duration = total_duration / chunk_count
    chunks = []
    for index in range(chunk_count):
        start = index * byte_size
        end = file.size if index == chunk_count - 1 else start + byte_size
        chunks.append(
            AudioChunk(
                source_name=file.name,
                index=index,
                start_time=index * chunk_duration,
                duration=chunk_duration,
                data=file.data[start:end],
                content_type=file.content_type,
            )
        )
    return chunks


class ChunkingStrategy:
    def __init__(
        self,
        max_chunk_size: int = DEFAULT_MAX_FILE_SIZE,
        duration_probe: DurationProbe = probe_duration,
    ):
        self.max_chunk_size = max_chunk_size
        self.duration_probe = duration_probe

    def split(
        self, file: AudioFile, reporter: Optional[ProgressReporter] = None
    ) -> List[AudioChunk]:
        """Split ``file`` into near-equal-duration chunks.

        Raises:
            TranscriptionError: With kind ``processing`` when ``file`` is
                empty.
        """
        reporter = reporter or ProgressReporter()
        if file.size == 0:
            raise TranscriptionError(f"Audio file {file.name} is empty", ErrorKind.PROCESSING)
        duration = self._total_duration(file)
        chunk_count = plan_chunk_count(file.size, self.max_chunk_size)
        logger.info(
            "Splitting %s (%.2f MB, %.2fs) into %d chunks of %.2fs",
            file.name,
            file.size / 1024 / 1024,
            duration,
            chunk_count,
            duration / chunk_count,
        )
        reporter.emit(Phase.CHUNKING, 0, chunk_count, 0)
        chunks = split_bytes(file, chunk_count, duration)
        for chunk in chunks:
            logger.debug(
                "Chunk %d: %d bytes, %.1fs-%.1fs",
                chunk.index + 1,
                chunk.size,
                chunk.start_time,
                chunk.end_time,
            )
        return chunks

    def _total_duration(self, file: AudioFile) -> float:
        try:
            duration = self.duration_probe(file)
        except TranscriptionError as exc:
            duration = estimate_duration(file.size)
            logger.warning(
                "Could not probe duration of %s (%s), assuming %.2fs at %d bit/s",
                file.name,
                exc.message,
                duration,
                ASSUMED_BITRATE,
            )
            return duration
        if duration <= 0:
            duration = estimate_duration(file.size)
            logger.warning(
                "%s reports no playable duration, assuming %.2fs at %d bit/s",
                file.name,
                duration,
                ASSUMED_BITRATE,
            )
        return duration


def estimate_processing_time(chunks: List[AudioChunk]) -> int:
    """Rough upfront estimate: half a second of processing per audio second."""
    total = sum(chunk.duration for chunk in chunks)
    return math.ceil(total * 0.5)
