"""
Speech-to-text service wrapper.

This module encapsulates interaction with an OpenAI-compatible
``/audio/transcriptions`` endpoint.  :func:`transcribe_file` sends one audio
file as a multipart request and returns the recognised text.

Failures are classified exactly once, here, into an
:class:`~transcriber.errors.ErrorKind`.  Downstream code (notably the batch
transcriber deciding whether a chunk failure is tolerable) only looks at that
tag and never at the message text.

Usage::

    from transcriber.models import AudioFile, TranscriptionRequest
    from transcriber.stt_service import transcribe_file

    request = TranscriptionRequest(file=AudioFile("memo.mp3", data, "audio/mpeg"))
    text = transcribe_file(api_key, request)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from .config import Settings, load_settings
from .errors import ErrorKind, TranscriptionError
from .models import TranscriptionRequest

logger = logging.getLogger(__name__)

TRANSCRIPTIONS_PATH = "/audio/transcriptions"
TEXT_RESPONSE_FORMATS = {"text", "srt", "vtt"}

_FORMAT_ERROR_CODES = {"invalid_file_format", "unsupported_file_format", "invalid_audio"}
_FORMAT_ERROR_MARKERS = ("file format", "could not be decoded", "corrupted or unsupported")
_AUTH_ERROR_CODES = {"invalid_api_key", "invalid_authentication", "invalid_organization"}
_QUOTA_ERROR_CODES = {"insufficient_quota", "rate_limit_exceeded"}

_RATE_LIMIT_WAIT = wait_exponential(multiplier=1, max=30)


def classify_error(
    status: int,
    message: str = "",
    code: Optional[str] = None,
    error_type: Optional[str] = None,
) -> ErrorKind:
    """Map an HTTP status and error body to an :class:`ErrorKind`."""
    code = (code or "").lower()
    error_type = (error_type or "").lower()
    lowered = message.lower()
    if status in (401, 403) or code in _AUTH_ERROR_CODES or error_type == "authentication_error":
        return ErrorKind.AUTHENTICATION
    if status == 429 or code in _QUOTA_ERROR_CODES or error_type in _QUOTA_ERROR_CODES:
        return ErrorKind.RATE_LIMIT
    if status >= 500:
        return ErrorKind.SERVER
    if code in _FORMAT_ERROR_CODES or any(marker in lowered for marker in _FORMAT_ERROR_MARKERS):
        return ErrorKind.INVALID_FORMAT
    return ErrorKind.API


def _error_body(response: requests.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    if not isinstance(body, dict):
        return {}
    error = body.get("error")
    return error if isinstance(error, dict) else {}


def error_from_response(response: requests.Response) -> TranscriptionError:
    """Build a structured error from a non-2xx transcription response."""
    error = _error_body(response)
    message = error.get("message") or "Unknown error"
    code = error.get("code")
    kind = classify_error(response.status_code, message, code, error.get("type"))
    return TranscriptionError(
        f"Transcription failed: {message}",
        kind,
        code=str(code) if code is not None else None,
        status=response.status_code,
    )


def parse_response(response: requests.Response, response_format: Optional[str] = None) -> str:
    """Extract the transcript text from a transcription response.

    Raises:
        TranscriptionError: If the response is an error or cannot be parsed.
    """
    if not response.ok:
        raise error_from_response(response)
    if response_format in TEXT_RESPONSE_FORMATS:
        return response.text
    try:
        data = response.json()
    except ValueError as exc:
        raise TranscriptionError(
            "Transcription failed: response was not valid JSON",
            ErrorKind.API,
            status=response.status_code,
        ) from exc
    return data.get("text") or ""


def build_form(request: TranscriptionRequest) -> Dict[str, str]:
    form = {"model": request.model}
    if request.language:
        form["language"] = request.language
    if request.temperature is not None:
        form["temperature"] = str(request.temperature)
    if request.response_format:
        form["response_format"] = request.response_format
    return form


def _transcribe_once(api_key: str, request: TranscriptionRequest, settings: Settings) -> str:
    audio = request.file
    url = f"{settings.api_base_url}{TRANSCRIPTIONS_PATH}"
    logger.info("Submitting %s (%d bytes) to %s", audio.name, audio.size, url)
    try:
        response = requests.post(
            url,
            headers={"Authorization": f"Bearer {api_key}"},
            files={"file": (audio.name, audio.data, audio.content_type)},
            data=build_form(request),
            timeout=settings.request_timeout,
        )
    except requests.RequestException as exc:
        raise TranscriptionError(
            "Network error. Please check your connection.", ErrorKind.NETWORK
        ) from exc
    if not response.ok:
        logger.error("Transcription request for %s failed with %s", audio.name, response.status_code)
    return parse_response(response, request.response_format)


def _is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, TranscriptionError) and exc.kind is ErrorKind.RATE_LIMIT


def transcribe_file(
    api_key: str,
    request: TranscriptionRequest,
    settings: Optional[Settings] = None,
) -> str:
    """Transcribe a single file that fits within the request size limit.

    Args:
        api_key: Bearer credential for the transcription API.
        request: File and transcription parameters.
        settings: Endpoint, timeout and retry settings; loaded from the
            environment when omitted.

    Returns:
        The transcript text (may be empty for silent audio).

    Raises:
        TranscriptionError: With the kind decided from the response.  Only
            rate-limit errors are retried, and only when
            ``settings.rate_limit_retries`` is above zero.
    """
    settings = settings or load_settings()
    retrying = Retrying(
        retry=retry_if_exception(_is_rate_limited),
        stop=stop_after_attempt(settings.rate_limit_retries + 1),
        wait=_RATE_LIMIT_WAIT,
        reraise=True,
    )
    return retrying(_transcribe_once, api_key, request, settings)
