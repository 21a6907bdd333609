import pytest

from transcriber.compression import CompressionStrategy
from transcriber.errors import CompressionError
from transcriber.models import Phase
from transcriber.progress import ProgressReporter
from tests.helpers import FakeEncoder, make_file


def test_compress_returns_ogg_file_and_reports_milestones():
    encoder = FakeEncoder(output=b"o" * 50)
    reporter = ProgressReporter()
    result = CompressionStrategy(encoder, max_size=100).compress(make_file(1000), reporter)

    assert result.name == "compressed_audio.ogg"
    assert result.content_type == "audio/ogg"
    assert result.data == b"o" * 50
    assert [(p.phase, p.progress) for p in reporter.history] == [
        (Phase.PROCESSING, 25.0),
        (Phase.PROCESSING, 50.0),
        (Phase.PROCESSING, 75.0),
        (Phase.COMBINING, 90.0),
    ]
    assert encoder.cleaned == ["/tmp/input", "/tmp/output.ogg"]


def test_unavailable_encoder_fails_before_any_milestone():
    encoder = FakeEncoder(fail_at="ensure_available")
    reporter = ProgressReporter()
    with pytest.raises(CompressionError):
        CompressionStrategy(encoder, max_size=100).compress(make_file(1000), reporter)
    assert reporter.history == []


def test_transform_failure_cleans_up_staged_input():
    encoder = FakeEncoder(fail_at="transform")
    with pytest.raises(CompressionError):
        CompressionStrategy(encoder, max_size=100).compress(make_file(1000))
    assert encoder.cleaned == ["/tmp/input"]


def test_output_over_limit_is_a_failure():
    encoder = FakeEncoder(output=b"o" * 500)
    with pytest.raises(CompressionError):
        CompressionStrategy(encoder, max_size=100).compress(make_file(1000))
