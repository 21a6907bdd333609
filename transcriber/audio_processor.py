"""
Audio utilities backed by ``pydub``.

This module wraps the pieces of the pipeline that need a real audio toolchain:
probing an upload's duration from its container metadata and re-encoding a
large upload into a small, speech-optimised Opus file.  ``pydub`` delegates to
``ffmpeg``/``ffprobe``, so both must be on the ``PATH`` (or configured through
``FFMPEG_BINARY_PATH``) for these functions to work.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from typing import Iterable, Optional

from pydub import AudioSegment
from pydub.utils import mediainfo

from .errors import CompressionError, ErrorKind, TranscriptionError
from .models import AudioFile

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {
    ".flac",
    ".m4a",
    ".mp3",
    ".mp4",
    ".mpeg",
    ".mpga",
    ".oga",
    ".ogg",
    ".wav",
    ".webm",
}

COMPRESSED_FILE_NAME = "compressed_audio.ogg"
COMPRESSED_CONTENT_TYPE = "audio/ogg"


def is_supported_audio(name: str) -> bool:
    """Check whether ``name`` has a supported audio extension."""
    return os.path.splitext(name)[1].lower() in SUPPORTED_EXTENSIONS


def cleanup_temp_file(path: Optional[str]) -> None:
    """Remove a temporary file if it exists.

    Args:
        path: Path to the temporary file.  Nothing happens if ``path`` is
            ``None`` or the file does not exist.
    """
    if path and os.path.exists(path):
        try:
            os.remove(path)
        except OSError:
            pass


def write_temp_file(data: bytes, extension: str) -> str:
    """Write ``data`` to a new temporary file and return its path.

    The caller owns the file and should remove it with
    :func:`cleanup_temp_file`.
    """
    fd, tmp_path = tempfile.mkstemp(suffix=f".{extension}")
    with os.fdopen(fd, "wb") as handle:
        handle.write(data)
    return tmp_path


def configure_ffmpeg(ffmpeg_binary: str) -> Optional[str]:
    """Point pydub at ``ffmpeg_binary`` for the whole process.

    pydub keeps its converter on the ``AudioSegment`` class, so this is called
    once at startup and every :class:`SpeechEncoder` shares the binary.

    Returns:
        The resolved executable path, or ``None`` if it is not installed.
    """
    converter = shutil.which(ffmpeg_binary)
    if not converter:
        logger.warning("ffmpeg not found at %s; compression is unavailable", ffmpeg_binary)
        return None
    AudioSegment.converter = converter
    return converter


def probe_duration(file: AudioFile) -> float:
    """Return the playback duration of ``file`` in seconds.

    The duration is read from container metadata with ``ffprobe``.  If the
    container does not declare one, the audio is decoded and measured.

    Raises:
        TranscriptionError: With kind ``processing`` if the metadata cannot
            be read or the duration is not positive.
    """
    tmp_path = write_temp_file(file.data, file.extension)
    try:
        info = mediainfo(tmp_path)
        duration = float(info.get("duration") or 0.0)
        if duration <= 0:
            duration = AudioSegment.from_file(tmp_path).duration_seconds
    except Exception as exc:
        raise TranscriptionError(
            f"Failed to load audio metadata for {file.name}", ErrorKind.PROCESSING
        ) from exc
    finally:
        cleanup_temp_file(tmp_path)
    if duration <= 0:
        raise TranscriptionError(
            f"Audio file {file.name} reports no playable duration", ErrorKind.PROCESSING
        )
    return duration


class SpeechEncoder:
    """Re-encode audio into mono, low-bitrate Opus tuned for voice.

    The work is split into steps so callers can report progress between
    them: :meth:`ensure_available`, :meth:`stage`, :meth:`transform` and
    :meth:`read`.  Every step raises :class:`CompressionError` on failure.

    Encoding runs through the converter set by :func:`configure_ffmpeg`;
    ``ffmpeg_binary`` is only checked for availability.
    """

    def __init__(self, ffmpeg_binary: str = "ffmpeg", bitrate: str = "12k"):
        self.ffmpeg_binary = ffmpeg_binary
        self.bitrate = bitrate

    def ensure_available(self) -> None:
        if not shutil.which(self.ffmpeg_binary):
            raise CompressionError(f"ffmpeg not found: {self.ffmpeg_binary}")

    def stage(self, file: AudioFile) -> str:
        """Write the upload to disk so ffmpeg can read it."""
        try:
            return write_temp_file(file.data, file.extension)
        except OSError as exc:
            raise CompressionError(f"Could not stage {file.name}") from exc

    def transform(self, input_path: str) -> str:
        fd, output_path = tempfile.mkstemp(suffix=".ogg")
        os.close(fd)
        try:
            audio = AudioSegment.from_file(input_path)
            audio.set_channels(1).export(
                output_path,
                format="ogg",
                codec="libopus",
                bitrate=self.bitrate,
                parameters=["-vn", "-map_metadata", "-1", "-application", "voip"],
            )
        except Exception as exc:
            cleanup_temp_file(output_path)
            raise CompressionError(f"Re-encoding failed: {exc}") from exc
        return output_path

    def read(self, output_path: str) -> bytes:
        try:
            with open(output_path, "rb") as handle:
                data = handle.read()
        except OSError as exc:
            raise CompressionError("Could not read compressed output") from exc
        if not data:
            raise CompressionError("Compressed output is empty")
        return data

    def cleanup(self, paths: Iterable[Optional[str]]) -> None:
        for path in paths:
            cleanup_temp_file(path)
