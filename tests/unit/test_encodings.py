"""Unit tests for MIME type negotiation helpers."""

import pytest

from interview_recorder.audio.encodings import (
    DEFAULT_FALLBACK_MIME,
    DEFAULT_MIME_PREFERENCES,
    base_type,
    extension_for,
    select_mime_type,
)


@pytest.mark.unit
class TestSelectMimeType:
    """Test cases for picking the recorder encoding."""

    def test_first_supported_wins(self):
        supported = {"audio/ogg;codecs=opus", "audio/mp4"}

        assert select_mime_type(DEFAULT_MIME_PREFERENCES, supported.__contains__) == "audio/ogg;codecs=opus"

    def test_preference_order_respected(self):
        supported = set(DEFAULT_MIME_PREFERENCES)

        assert select_mime_type(DEFAULT_MIME_PREFERENCES, supported.__contains__) == "audio/webm;codecs=opus"

    def test_fallback_when_none_supported(self):
        assert select_mime_type(DEFAULT_MIME_PREFERENCES, lambda mime: False) == DEFAULT_FALLBACK_MIME

    def test_custom_fallback(self):
        assert select_mime_type([], lambda mime: True, fallback="audio/flac") == "audio/flac"

    def test_probe_called_in_order_until_match(self):
        probed = []

        def probe(mime):
            probed.append(mime)
            return mime == "audio/webm"

        select_mime_type(DEFAULT_MIME_PREFERENCES, probe)

        assert probed == ["audio/webm;codecs=opus", "audio/webm"]


@pytest.mark.unit
class TestMimeHelpers:
    """Test cases for base_type and extension_for."""

    def test_base_type_strips_parameters(self):
        assert base_type("audio/webm;codecs=opus") == "audio/webm"
        assert base_type("Audio/L16; rate=16000") == "audio/l16"

    @pytest.mark.parametrize("mime_type,extension", [
        ("audio/webm;codecs=opus", "webm"),
        ("audio/ogg;codecs=opus", "ogg"),
        ("audio/mp4", "m4a"),
        ("audio/wav", "wav"),
        ("audio/L16;rate=16000;channels=1", "pcm"),
        ("application/x-unknown", "bin"),
    ])
    def test_extension_for(self, mime_type, extension):
        assert extension_for(mime_type) == extension
