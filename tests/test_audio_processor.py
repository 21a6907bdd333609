import os
from unittest.mock import Mock

import pytest

import transcriber.audio_processor as ap
from transcriber.errors import CompressionError, ErrorKind, TranscriptionError
from transcriber.models import AudioFile


def test_is_supported_audio():
    assert ap.is_supported_audio("talk.MP3")
    assert ap.is_supported_audio("clip.webm")
    assert not ap.is_supported_audio("notes.txt")


def test_probe_duration_reads_metadata_and_removes_temp_file(monkeypatch):
    seen = []

    def fake_mediainfo(path):
        seen.append(path)
        with open(path, "rb") as handle:
            assert handle.read() == b"abc"
        return {"duration": "12.5"}

    monkeypatch.setattr(ap, "mediainfo", fake_mediainfo)
    assert ap.probe_duration(AudioFile("a.mp3", b"abc")) == 12.5
    assert seen[0].endswith(".mp3")
    assert not os.path.exists(seen[0])


def test_probe_duration_decodes_when_metadata_lacks_duration(monkeypatch):
    monkeypatch.setattr(ap, "mediainfo", lambda path: {})
    segment = Mock(duration_seconds=3.0)
    monkeypatch.setattr(ap, "AudioSegment", Mock(from_file=Mock(return_value=segment)))
    assert ap.probe_duration(AudioFile("a.wav", b"abc")) == 3.0


def test_probe_duration_failure_is_processing_error(monkeypatch):
    def broken(path):
        raise OSError("ffprobe missing")

    monkeypatch.setattr(ap, "mediainfo", broken)
    with pytest.raises(TranscriptionError) as info:
        ap.probe_duration(AudioFile("a.mp3", b"abc"))
    assert info.value.kind is ErrorKind.PROCESSING


def test_encoder_unavailable(monkeypatch):
    monkeypatch.setattr(ap.shutil, "which", lambda name: None)
    with pytest.raises(CompressionError):
        ap.SpeechEncoder("ffmpeg").ensure_available()


def test_encoder_availability_check_leaves_converter_alone(monkeypatch):
    monkeypatch.setattr(ap.AudioSegment, "converter", "/opt/ffmpeg")
    monkeypatch.setattr(ap.shutil, "which", lambda name: f"/usr/bin/{name}")
    ap.SpeechEncoder("ffmpeg").ensure_available()
    assert ap.AudioSegment.converter == "/opt/ffmpeg"


def test_configure_ffmpeg(monkeypatch):
    monkeypatch.setattr(ap.AudioSegment, "converter", "ffmpeg")
    monkeypatch.setattr(ap.shutil, "which", lambda name: f"/usr/bin/{name}")
    assert ap.configure_ffmpeg("ffmpeg6") == "/usr/bin/ffmpeg6"
    assert ap.AudioSegment.converter == "/usr/bin/ffmpeg6"


def test_configure_ffmpeg_missing_binary(monkeypatch):
    monkeypatch.setattr(ap.AudioSegment, "converter", "ffmpeg")
    monkeypatch.setattr(ap.shutil, "which", lambda name: None)
    assert ap.configure_ffmpeg("ffmpeg") is None
    assert ap.AudioSegment.converter == "ffmpeg"


def test_encoder_stage_and_read(tmp_path):
    encoder = ap.SpeechEncoder()
    path = encoder.stage(AudioFile("a.m4a", b"data"))
    try:
        assert path.endswith(".m4a")
        assert encoder.read(path) == b"data"
    finally:
        encoder.cleanup([path, None])
    assert not os.path.exists(path)


def test_encoder_read_rejects_empty_output(tmp_path):
    empty = tmp_path / "out.ogg"
    empty.write_bytes(b"")
    with pytest.raises(CompressionError):
        ap.SpeechEncoder().read(str(empty))


def test_encoder_transform_exports_voice_profile(monkeypatch):
    mono = Mock()
    segment = Mock()
    segment.set_channels.return_value = mono
    monkeypatch.setattr(ap, "AudioSegment", Mock(from_file=Mock(return_value=segment)))

    output = ap.SpeechEncoder(bitrate="16k").transform("/tmp/in.mp3")
    try:
        segment.set_channels.assert_called_once_with(1)
        args, kwargs = mono.export.call_args
        assert args[0] == output
        assert kwargs["format"] == "ogg"
        assert kwargs["codec"] == "libopus"
        assert kwargs["bitrate"] == "16k"
        assert "voip" in kwargs["parameters"]
    finally:
        ap.cleanup_temp_file(output)


def test_encoder_transform_failure(monkeypatch):
    monkeypatch.setattr(
        ap, "AudioSegment", Mock(from_file=Mock(side_effect=Exception("decode error")))
    )
    with pytest.raises(CompressionError):
        ap.SpeechEncoder().transform("/tmp/in.mp3")
