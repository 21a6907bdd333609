"""
Merge per-chunk transcripts into a single string.

The combination is a pure function of ``(chunk index, transcript)`` pairs:
pairs are re-sorted by index first, so the order in which partial results
arrived never changes the output.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence, Tuple

from .models import AudioChunk

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def combine_pairs(pairs: Iterable[Tuple[int, str]]) -> str:
    """Join transcripts ordered by chunk index.

    Each transcript is trimmed, empty ones are dropped entirely, the rest are
    joined with a single space and any run of whitespace is collapsed.
    """
    ordered = sorted(pairs, key=lambda pair: pair[0])
    texts = [text.strip() for _, text in ordered]
    combined = " ".join(text for text in texts if text)
    return _WHITESPACE.sub(" ", combined).strip()


def combine(transcripts: Sequence[str]) -> str:
    """Combine transcripts whose list position is their chunk index."""
    return combine_pairs(enumerate(transcripts))


def combine_chunk_results(chunks: Sequence[AudioChunk], transcripts: Sequence[str]) -> str:
    """Combine transcripts tagged by the chunks they were produced from.

    Raises:
        ValueError: If ``chunks`` and ``transcripts`` differ in length.
    """
    if len(chunks) != len(transcripts):
        raise ValueError(
            f"Chunk and transcription lists must have the same length "
            f"({len(chunks)} != {len(transcripts)})"
        )
    combined = combine_pairs((chunk.index, text) for chunk, text in zip(chunks, transcripts))
    empty = sum(1 for text in transcripts if not text.strip())
    logger.info(
        "Combined %d chunk transcripts (%d empty) into %d characters",
        len(chunks),
        empty,
        len(combined),
    )
    return combined
