"""
answer_grader - answer normalization, matching and spoken-response scoring

Provides:
- Reference answer normalization and exact / similarity matching
- Audio transcription pipeline (ffmpeg + speech backend)
- Evaluation service with atomic per-question submission upserts
- Score aggregation (percentage, status, band score)
"""

from .core import (
    GradingEngineError,
    InvalidReference,
    InvalidIdentifier,
    NotFound,
    TranscodeFailed,
    BackendUnavailable,
    EmptyTranscript,
    ValidationError,
)
from .matching import ExactMatcher, SimilarityScorer, normalize
from .services import AnswerEvaluationService, ScoreAggregator
from .transcription import TranscriptionPipeline

__version__ = "1.0.0"

__all__ = [
    "GradingEngineError",
    "InvalidReference",
    "InvalidIdentifier",
    "NotFound",
    "TranscodeFailed",
    "BackendUnavailable",
    "EmptyTranscript",
    "ValidationError",
    "ExactMatcher",
    "SimilarityScorer",
    "normalize",
    "AnswerEvaluationService",
    "ScoreAggregator",
    "TranscriptionPipeline",
]
