from transcriber.size_classifier import Route, classify_size

MB = 1024 * 1024


def test_small_file_goes_direct():
    assert classify_size(10 * MB) is Route.DIRECT


def test_file_at_limit_goes_direct():
    assert classify_size(25 * MB) is Route.DIRECT


def test_file_over_limit_is_oversized():
    assert classify_size(25 * MB + 1) is Route.OVERSIZED


def test_custom_threshold():
    assert classify_size(2000, threshold=1000) is Route.OVERSIZED
    assert classify_size(999, threshold=1000) is Route.DIRECT
