"""
Multi-phase progress reporting.

A :class:`ProgressReporter` is created per transcription and is the single
point every stage reports into.  It keeps the reported sequence well formed:
phases only move forward (``analyzing`` → ``chunking`` → ``processing`` →
``combining``) and progress never goes down within a phase.  Updates that
would break either rule are dropped or clamped rather than forwarded.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from .models import BatchProgress, Phase

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BatchProgress], None]


class ProgressReporter:
    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self._lock = threading.Lock()
        self._last: Optional[BatchProgress] = None
        self.history: List[BatchProgress] = []

    @property
    def last(self) -> Optional[BatchProgress]:
        return self._last

    @property
    def phase(self) -> Optional[Phase]:
        return self._last.phase if self._last else None

    def emit(
        self,
        phase: Phase,
        current_chunk: int,
        total_chunks: int,
        progress: float,
        estimated_time_remaining: Optional[int] = None,
    ) -> Optional[BatchProgress]:
        """Record and forward a progress update.

        Returns:
            The snapshot that was forwarded, or ``None`` if the update was
            suppressed because its phase has already been left.
        """
        with self._lock:
            last = self._last
            if last is not None and phase.order < last.phase.order:
                logger.debug(
                    "Ignoring %s progress after entering %s", phase.value, last.phase.value
                )
                return None
            progress = min(100.0, max(0.0, float(progress)))
            if last is not None and phase is last.phase:
                progress = max(progress, last.progress)
            snapshot = BatchProgress(
                phase=phase,
                current_chunk=current_chunk,
                total_chunks=total_chunks,
                progress=progress,
                estimated_time_remaining=estimated_time_remaining,
            )
            self._last = snapshot
            self.history.append(snapshot)
            if self._callback is not None:
                self._callback(snapshot)
            return snapshot
