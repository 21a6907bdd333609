"""
Shrink oversized uploads by re-encoding them for speech.

Compression is tried before chunking.  An hour of speech at 12 kbit/s mono
Opus is roughly 5 MB, well under the request limit.  Any failure here is
reported as :class:`CompressionError` and the caller falls back to chunking.
"""

from __future__ import annotations

import logging
from typing import Optional

from .audio_processor import COMPRESSED_CONTENT_TYPE, COMPRESSED_FILE_NAME, SpeechEncoder
from .config import DEFAULT_MAX_FILE_SIZE
from .errors import CompressionError
from .models import AudioFile, Phase
from .progress import ProgressReporter

logger = logging.getLogger(__name__)


class CompressionStrategy:
    def __init__(self, encoder: SpeechEncoder, max_size: int = DEFAULT_MAX_FILE_SIZE):
        self.encoder = encoder
        self.max_size = max_size

    def compress(self, file: AudioFile, reporter: Optional[ProgressReporter] = None) -> AudioFile:
        """Re-encode ``file`` so it fits under ``max_size``.

        Progress checkpoints: encoder ready (25%), input staged (50%) and
        transform complete (75%) in the ``processing`` phase, then output
        read (90%) in ``combining``.

        Raises:
            CompressionError: If the encoder is unavailable, re-encoding
                fails, or the output is unreadable or still too large.
        """
        reporter = reporter or ProgressReporter()
        logger.info("Compressing %s (%.2f MB)", file.name, file.size / 1024 / 1024)
        input_path = None
        output_path = None
        try:
            self.encoder.ensure_available()
            reporter.emit(Phase.PROCESSING, 0, 1, 25)

            input_path = self.encoder.stage(file)
            reporter.emit(Phase.PROCESSING, 0, 1, 50)

            output_path = self.encoder.transform(input_path)
            reporter.emit(Phase.PROCESSING, 0, 1, 75)

            data = self.encoder.read(output_path)
        finally:
            self.encoder.cleanup([input_path, output_path])

        if len(data) > self.max_size:
            raise CompressionError(
                f"Compressed output is still {len(data)} bytes (limit {self.max_size})"
            )
        logger.info(
            "Compressed %s from %d to %d bytes (%.1f%% of original)",
            file.name,
            file.size,
            len(data),
            len(data) / file.size * 100 if file.size else 0.0,
        )
        reporter.emit(Phase.COMBINING, 1, 1, 90)
        return AudioFile(name=COMPRESSED_FILE_NAME, data=data, content_type=COMPRESSED_CONTENT_TYPE)
