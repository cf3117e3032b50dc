"""
Tests for engine settings.
"""

import pytest
from pydantic import ValidationError

from answer_grader.core.config import Settings


def test_defaults():
    settings = Settings()

    assert settings.WRITING_SIMILARITY_THRESHOLD == 0.6
    assert settings.SPEAKING_SIMILARITY_THRESHOLD == 0.7
    assert settings.SAMPLE_RATE_HERTZ == 16000
    assert settings.SPEECH_LANGUAGE_CODE == "en-US"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SPEAKING_SIMILARITY_THRESHOLD", "0.85")
    monkeypatch.setenv("TRANSCRIPTION_BACKEND", "command")

    settings = Settings()

    assert settings.SPEAKING_SIMILARITY_THRESHOLD == 0.85
    assert settings.TRANSCRIPTION_BACKEND == "command"


@pytest.mark.parametrize("value", [-0.1, 1.1])
def test_thresholds_are_bounded(value):
    with pytest.raises(ValidationError):
        Settings(WRITING_SIMILARITY_THRESHOLD=value)


def test_audio_references_are_not_configured():
    # audio_ref is an opaque string from the upload layer
    assert "AUDIO_STORAGE_DIR" not in Settings.model_fields
