"""Decide whether an upload can be sent to the transcription API as-is."""

from enum import Enum

from .config import DEFAULT_MAX_FILE_SIZE


class Route(str, Enum):
    DIRECT = "direct"
    OVERSIZED = "oversized"


def classify_size(size_bytes: int, threshold: int = DEFAULT_MAX_FILE_SIZE) -> Route:
    """Return :attr:`Route.OVERSIZED` when ``size_bytes`` exceeds ``threshold``."""
    if size_bytes > threshold:
        return Route.OVERSIZED
    return Route.DIRECT
