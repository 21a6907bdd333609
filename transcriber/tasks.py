"""
Orchestration layer for the transcription pipeline.

:func:`transcribe_audio` is the single entry point used by the HTTP layer.
It validates the request and then picks a route by file size:

* Files within the per-request limit are sent **directly** in one call.
* Oversized files are first **compressed** into mono low-bitrate Opus and,
  if that fits, sent in one call.
* If compression is disabled or fails for any reason, the file is
  **chunked** into byte ranges that are transcribed one by one and
  combined into a single transcript.

Compression failures never reach the caller; they only change the route.
Failures of the remote calls themselves propagate as
:class:`~transcriber.errors.TranscriptionError`.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import List, Optional

from . import stt_service
from .audio_processor import SpeechEncoder, is_supported_audio, probe_duration
from .batch import BatchTranscriber, Clock
from .chunking import ChunkingStrategy, DurationProbe, estimate_processing_time
from .combiner import combine_chunk_results
from .compression import CompressionStrategy
from .config import Settings, load_settings
from .errors import validation_error
from .models import (
    AudioChunk,
    AudioFile,
    Phase,
    RouteTaken,
    TranscriptionOutcome,
    TranscriptionRequest,
    TranscriptionResult,
)
from .progress import ProgressCallback, ProgressReporter
from .size_classifier import Route, classify_size

logger = logging.getLogger(__name__)


def validate_request(api_key: Optional[str], request: Optional[TranscriptionRequest]) -> None:
    """Reject requests that can never succeed, before any work is done."""
    if not api_key or not api_key.strip():
        raise validation_error("API key is required")
    if request is None or request.file is None or request.file.size == 0:
        raise validation_error("Audio file is required")
    if not is_supported_audio(request.file.name):
        raise validation_error(f"Unsupported audio format: {request.file.name}")


def _single_result(
    request: TranscriptionRequest, text: str, route: RouteTaken
) -> TranscriptionResult:
    return TranscriptionResult(
        text=text,
        audio_file_name=request.file.name,
        route=route,
        outcome=TranscriptionOutcome(transcripts=[text], text=text),
        language=request.language,
    )


def _try_compress(
    file: AudioFile,
    reporter: ProgressReporter,
    settings: Settings,
    encoder: Optional[SpeechEncoder],
) -> Optional[AudioFile]:
    encoder = encoder or SpeechEncoder(settings.ffmpeg_binary, settings.compression_bitrate)
    strategy = CompressionStrategy(encoder, max_size=settings.max_file_size)
    try:
        return strategy.compress(file, reporter)
    except Exception as exc:
        logger.warning("Compression of %s failed, falling back to chunking: %s", file.name, exc)
        return None


def _transcribe_in_batches(
    api_key: str,
    request: TranscriptionRequest,
    reporter: ProgressReporter,
    settings: Settings,
    duration_probe: DurationProbe,
    cancel_event: Optional[threading.Event],
    clock: Clock,
) -> TranscriptionResult:
    chunker = ChunkingStrategy(settings.chunk_size, duration_probe)
    chunks: List[AudioChunk] = chunker.split(request.file, reporter)

    def transcribe_chunk(chunk: AudioChunk) -> str:
        return stt_service.transcribe_file(api_key, request.with_file(chunk.as_file()), settings)

    batch = BatchTranscriber(
        transcribe_chunk,
        min_chunk_size=settings.min_chunk_size,
        max_workers=settings.max_workers,
        clock=clock,
    )
    started = clock()
    transcripts = batch.transcribe(
        chunks,
        reporter,
        cancel_event=cancel_event,
        initial_estimate=estimate_processing_time(chunks),
    )

    reporter.emit(Phase.COMBINING, len(chunks), len(chunks), 100)
    text = combine_chunk_results(chunks, transcripts)
    logger.info(
        "Batch transcription of %s finished: %d chunks in %.2fs",
        request.file.name,
        len(chunks),
        clock() - started,
    )
    return TranscriptionResult(
        text=text,
        audio_file_name=request.file.name,
        route=RouteTaken.CHUNKED,
        outcome=TranscriptionOutcome(transcripts=transcripts, text=text),
        language=request.language,
        duration=sum(chunk.duration for chunk in chunks),
    )


def transcribe_audio(
    api_key: str,
    request: TranscriptionRequest,
    on_progress: Optional[ProgressCallback] = None,
    *,
    settings: Optional[Settings] = None,
    encoder: Optional[SpeechEncoder] = None,
    duration_probe: DurationProbe = probe_duration,
    cancel_event: Optional[threading.Event] = None,
    clock: Clock = time.monotonic,
) -> TranscriptionResult:
    """Transcribe an audio file of any size.

    Args:
        api_key: Bearer credential for the transcription API.
        request: The file and transcription parameters.
        on_progress: Called with a :class:`~transcriber.models.BatchProgress`
            at each checkpoint of the oversized routes.
        settings: Pipeline settings; loaded from the environment if omitted.
        encoder: Encoder used for compression (defaults to ffmpeg via pydub).
        duration_probe: Returns a file's duration in seconds for chunking.
        cancel_event: When set, the chunked route stops before the next
            chunk is submitted.
        clock: Monotonic clock used for remaining-time estimates.

    Returns:
        The combined transcription result.

    Raises:
        TranscriptionError: For validation failures, network failures, or
            remote errors that are not tolerated per chunk.
    """
    settings = settings or load_settings()
    validate_request(api_key, request)
    file = request.file

    if classify_size(file.size, settings.max_file_size) is Route.DIRECT:
        logger.info("Transcribing %s directly (%d bytes)", file.name, file.size)
        text = stt_service.transcribe_file(api_key, request, settings)
        return _single_result(request, text, RouteTaken.DIRECT)

    reporter = ProgressReporter(on_progress)
    reporter.emit(Phase.ANALYZING, 0, 0, 0)
    logger.info(
        "%s is %.2f MB, above the %.2f MB limit",
        file.name,
        file.size / 1024 / 1024,
        settings.max_file_size / 1024 / 1024,
    )

    if settings.compression_enabled:
        compressed = _try_compress(file, reporter, settings, encoder)
        if compressed is not None:
            text = stt_service.transcribe_file(api_key, request.with_file(compressed), settings)
            reporter.emit(Phase.COMBINING, 1, 1, 100)
            return _single_result(request, text, RouteTaken.COMPRESSED)

    return _transcribe_in_batches(
        api_key, request, reporter, settings, duration_probe, cancel_event, clock
    )
