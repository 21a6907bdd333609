"""
HTTP entrypoint for the transcription pipeline.

``POST /transcribe`` accepts a multipart upload (field ``file``) with the
caller's API key in an ``Authorization: Bearer`` header, plus optional
``language``, ``temperature``, ``model`` and ``response_format`` form
fields.  It responds with the transcription result as JSON, or with a single
``{"error": {"message", "type", "code"}}`` object on failure.

``GET /formats`` lists the accepted audio extensions and the size limit
above which uploads are compressed or chunked.
"""

import json
import logging
import os

from flask import Flask, jsonify, request

from . import tasks
from .audio_processor import SUPPORTED_EXTENSIONS, configure_ffmpeg
from .config import load_settings
from .errors import ErrorKind, TranscriptionError, validation_error
from .models import AudioFile, TranscriptionRequest

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)

app = Flask(__name__)
settings = load_settings()
configure_ffmpeg(settings.ffmpeg_binary)

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.INVALID_FORMAT: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.PROCESSING: 422,
    ErrorKind.CANCELLED: 499,
}


def _bearer_token(header: str) -> str:
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def _parse_temperature(raw):
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except ValueError:
        raise validation_error(f"Invalid temperature: {raw}")


def _log_progress(progress) -> None:
    logging.info(json.dumps({"event": "progress", **progress.to_dict()}))


@app.route("/transcribe", methods=["POST"])
def transcribe():
    upload = request.files.get("file")
    file_name = upload.filename if upload else None
    logging.info(json.dumps({"event": "request", "file": file_name}))
    try:
        audio = None
        if upload is not None:
            audio = AudioFile(
                name=upload.filename or "audio.mp3",
                data=upload.read(),
                content_type=upload.mimetype or "application/octet-stream",
            )
        transcription_request = TranscriptionRequest(
            file=audio,
            model=request.form.get("model") or settings.model,
            language=request.form.get("language") or None,
            temperature=_parse_temperature(request.form.get("temperature")),
            response_format=request.form.get("response_format") or None,
        )
        result = tasks.transcribe_audio(
            _bearer_token(request.headers.get("Authorization", "")),
            transcription_request,
            on_progress=_log_progress,
            settings=settings,
        )
    except TranscriptionError as exc:
        logging.error(
            json.dumps({"event": "transcription_error", "file": file_name, "kind": exc.kind.value})
        )
        return jsonify({"error": exc.to_dict()}), _STATUS_BY_KIND.get(exc.kind, 502)
    except Exception:
        logger.exception("Error in /transcribe")
        error = {"message": "Server error", "type": "server_error", "code": None}
        return jsonify({"error": error}), 500

    logging.info(
        json.dumps(
            {
                "event": "transcription_complete",
                "file": file_name,
                "route": result.route.value,
                "chars": len(result.text),
            }
        )
    )
    return jsonify(result.to_dict()), 200


@app.route("/formats", methods=["GET"])
def formats():
    return jsonify(
        {
            "formats": sorted(ext.lstrip(".") for ext in SUPPORTED_EXTENSIONS),
            "max_file_size": settings.max_file_size,
        }
    )


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port)
