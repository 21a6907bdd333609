import io

import transcriber.main as main
from transcriber.errors import ErrorKind, TranscriptionError
from transcriber.models import RouteTaken, TranscriptionOutcome, TranscriptionResult


def upload(client, data=b"ID3audio", name="memo.mp3", headers=None, **form):
    form["file"] = (io.BytesIO(data), name)
    return client.post(
        "/transcribe",
        data=form,
        headers=headers if headers is not None else {"Authorization": "Bearer sk-test"},
        content_type="multipart/form-data",
    )


def test_transcribe_endpoint(monkeypatch):
    captured = {}

    def fake_transcribe(api_key, request, on_progress=None, settings=None):
        captured["api_key"] = api_key
        captured["request"] = request
        return TranscriptionResult(
            text="hi",
            audio_file_name=request.file.name,
            route=RouteTaken.DIRECT,
            outcome=TranscriptionOutcome(transcripts=["hi"], text="hi"),
            language=request.language,
        )

    monkeypatch.setattr(main.tasks, "transcribe_audio", fake_transcribe)
    client = main.app.test_client()
    rv = upload(client, language="he", temperature="0.3")

    assert rv.status_code == 200
    body = rv.get_json()
    assert body["text"] == "hi"
    assert body["audio_file_name"] == "memo.mp3"
    assert body["route"] == "direct"
    assert captured["api_key"] == "sk-test"
    assert captured["request"].file.data == b"ID3audio"
    assert captured["request"].language == "he"
    assert captured["request"].temperature == 0.3


def test_missing_credential_returns_validation_error():
    client = main.app.test_client()
    rv = upload(client, headers={})
    assert rv.status_code == 400
    assert rv.get_json() == {
        "error": {"message": "API key is required", "type": "validation_error", "code": None}
    }


def test_missing_file_returns_validation_error():
    client = main.app.test_client()
    rv = client.post("/transcribe", headers={"Authorization": "Bearer k"})
    assert rv.status_code == 400
    assert rv.get_json()["error"]["message"] == "Audio file is required"


def test_invalid_temperature():
    client = main.app.test_client()
    rv = upload(client, temperature="warm")
    assert rv.status_code == 400


def test_remote_error_maps_to_status(monkeypatch):
    def fake_transcribe(*args, **kwargs):
        raise TranscriptionError(
            "Transcription failed: Incorrect API key", ErrorKind.AUTHENTICATION, code="invalid_api_key"
        )

    monkeypatch.setattr(main.tasks, "transcribe_audio", fake_transcribe)
    rv = upload(main.app.test_client())
    assert rv.status_code == 401
    assert rv.get_json()["error"] == {
        "message": "Transcription failed: Incorrect API key",
        "type": "api_error",
        "code": "invalid_api_key",
    }


def test_undecodable_upload_is_a_client_error(monkeypatch):
    def fake_transcribe(*args, **kwargs):
        raise TranscriptionError(
            "Transcription failed: Invalid file format.", ErrorKind.INVALID_FORMAT, code="invalid_file_format"
        )

    monkeypatch.setattr(main.tasks, "transcribe_audio", fake_transcribe)
    rv = upload(main.app.test_client())
    assert rv.status_code == 400
    assert rv.get_json()["error"]["code"] == "invalid_file_format"


def test_unexpected_error_hides_details(monkeypatch):
    def fake_transcribe(*args, **kwargs):
        raise RuntimeError("secret stack detail")

    monkeypatch.setattr(main.tasks, "transcribe_audio", fake_transcribe)
    rv = upload(main.app.test_client())
    assert rv.status_code == 500
    assert "secret" not in rv.get_data(as_text=True)


def test_formats_endpoint():
    rv = main.app.test_client().get("/formats")
    body = rv.get_json()
    assert "mp3" in body["formats"]
    assert body["max_file_size"] == main.settings.max_file_size
