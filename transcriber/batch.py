"""
Submit audio chunks to the transcription API one request per chunk.

The batch keeps exactly one transcript slot per chunk.  A slot stays empty
when its chunk is too small to be worth sending or when the API rejected the
chunk as undecodable, which is expected for byte-range splits.  Any other
failure aborts the whole batch and propagates; no partial transcript is
returned in that case.

By default chunks are sent strictly one after another.  With
``max_workers > 1`` a bounded thread pool is used instead; results are still
stored by chunk position and progress is aggregated under a single lock, so
the reported values never go backwards.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Sequence

from .config import DEFAULT_MIN_CHUNK_SIZE
from .errors import ErrorKind, TranscriptionError
from .models import AudioChunk, Phase
from .progress import ProgressReporter

logger = logging.getLogger(__name__)

ChunkTranscriber = Callable[[AudioChunk], str]
Clock = Callable[[], float]


class ElapsedTracker:
    """Wall-clock bookkeeping for remaining-time estimates."""

    def __init__(self, clock: Clock = time.monotonic):
        self._clock = clock
        self.started_at = clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self.started_at

    def estimate_remaining(self, completed: int, total: int) -> Optional[int]:
        """Average time per completed chunk times the chunks still to go."""
        if completed <= 0:
            return None
        return math.ceil(self.elapsed / completed * (total - completed))


class _BatchState:
    # Per-invocation progress aggregation point shared by all workers.
    def __init__(self, total: int, reporter: ProgressReporter, tracker: ElapsedTracker):
        self.total = total
        self.completed = 0
        self._reporter = reporter
        self._tracker = tracker
        self._lock = threading.Lock()

    def complete(self) -> None:
        with self._lock:
            self.completed += 1
            self._reporter.emit(
                Phase.PROCESSING,
                self.completed,
                self.total,
                self.completed / self.total * 100,
                self._tracker.estimate_remaining(self.completed, self.total),
            )


class BatchTranscriber:
    def __init__(
        self,
        transcribe_chunk: ChunkTranscriber,
        *,
        min_chunk_size: int = DEFAULT_MIN_CHUNK_SIZE,
        max_workers: int = 1,
        clock: Clock = time.monotonic,
    ):
        self.transcribe_chunk = transcribe_chunk
        self.min_chunk_size = min_chunk_size
        self.max_workers = max(1, max_workers)
        self.clock = clock

    def transcribe(
        self,
        chunks: Sequence[AudioChunk],
        reporter: Optional[ProgressReporter] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
        initial_estimate: Optional[int] = None,
    ) -> List[str]:
        """Transcribe every chunk and return transcripts aligned with ``chunks``.

        Args:
            chunks: Chunks in index order.
            reporter: Receives ``processing`` updates; a private one is used
                when omitted.
            cancel_event: Checked before each chunk is submitted.
            initial_estimate: Remaining-time estimate reported before the
                first chunk completes.

        Raises:
            TranscriptionError: For any failure other than an undecodable
                chunk, or with kind ``cancelled`` if ``cancel_event`` is set.
        """
        reporter = reporter or ProgressReporter()
        total = len(chunks)
        transcripts = [""] * total
        state = _BatchState(total, reporter, ElapsedTracker(self.clock))
        reporter.emit(Phase.PROCESSING, 0, total, 0, initial_estimate)
        if total == 0:
            return transcripts

        if self.max_workers == 1 or total == 1:
            for position, chunk in enumerate(chunks):
                transcripts[position] = self._run(chunk, state, cancel_event)
            return transcripts

        with ThreadPoolExecutor(max_workers=min(self.max_workers, total)) as pool:
            futures = {
                pool.submit(self._run, chunk, state, cancel_event): position
                for position, chunk in enumerate(chunks)
            }
            try:
                for future in as_completed(futures):
                    transcripts[futures[future]] = future.result()
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
        return transcripts

    def _run(
        self,
        chunk: AudioChunk,
        state: _BatchState,
        cancel_event: Optional[threading.Event],
    ) -> str:
        if cancel_event is not None and cancel_event.is_set():
            raise TranscriptionError("Transcription cancelled", ErrorKind.CANCELLED)
        text = self._process(chunk, state.total)
        state.complete()
        return text

    def _process(self, chunk: AudioChunk, total: int) -> str:
        number = chunk.index + 1
        if chunk.size < self.min_chunk_size:
            logger.info("Skipping chunk %d/%d: too small (%d bytes)", number, total, chunk.size)
            return ""
        try:
            text = self.transcribe_chunk(chunk)
        except TranscriptionError as exc:
            if not exc.tolerable:
                logger.error("Chunk %d/%d failed: %s", number, total, exc.message)
                raise
            logger.warning(
                "Chunk %d/%d could not be decoded, leaving it empty: %s",
                number,
                total,
                exc.message,
            )
            return ""
        logger.info("Chunk %d/%d transcribed (%d chars)", number, total, len(text))
        return text
