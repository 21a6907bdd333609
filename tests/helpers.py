from unittest.mock import Mock

from transcriber.errors import CompressionError
from transcriber.models import AudioChunk, AudioFile


class FakeClock:
    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeEncoder:
    """Stands in for the ffmpeg-backed SpeechEncoder."""

    def __init__(self, output=b"ogg" * 10, fail_at=None):
        self.output = output
        self.fail_at = fail_at
        self.cleaned = []
        self.calls = []

    def _step(self, name):
        self.calls.append(name)
        if self.fail_at == name:
            raise CompressionError(f"{name} failed")

    def ensure_available(self):
        self._step("ensure_available")

    def stage(self, file):
        self._step("stage")
        return "/tmp/input"

    def transform(self, input_path):
        self._step("transform")
        return "/tmp/output.ogg"

    def read(self, output_path):
        self._step("read")
        return self.output

    def cleanup(self, paths):
        self.cleaned.extend(p for p in paths if p)


def make_chunks(sizes, duration=10.0):
    return [
        AudioChunk(
            source_name="talk.mp3",
            index=i,
            start_time=i * duration,
            duration=duration,
            data=b"x" * size,
        )
        for i, size in enumerate(sizes)
    ]


def make_file(size, name="talk.mp3"):
    return AudioFile(name=name, data=bytes(i % 251 for i in range(size)), content_type="audio/mpeg")


def fake_response(status=200, body=None, text=""):
    response = Mock(ok=200 <= status < 300, status_code=status, text=text)
    if body is None:
        response.json = Mock(side_effect=ValueError("no json"))
    else:
        response.json = Mock(return_value=body)
    return response
