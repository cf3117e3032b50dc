"""Spoken response transcription"""

from .transcoder import CanonicalAudio, FfmpegTranscoder, suffix_for
from .backends import (
    TranscriptionBackend,
    GoogleSpeechBackend,
    CommandLineBackend,
    get_transcription_backend,
)
from .pipeline import (
    TranscriptionJob,
    TranscriptionPipeline,
    join_segments,
    get_transcription_pipeline,
)

__all__ = [
    "CanonicalAudio",
    "FfmpegTranscoder",
    "suffix_for",
    "TranscriptionBackend",
    "GoogleSpeechBackend",
    "CommandLineBackend",
    "get_transcription_backend",
    "TranscriptionJob",
    "TranscriptionPipeline",
    "join_segments",
    "get_transcription_pipeline",
]
