"""Domain models package"""

from .domain import (
    Module,
    MatchMode,
    QuestionType,
    RecordStatus,
    ScoreStatus,
    Question,
    TextAnswer,
    ListAnswer,
    AudioAnswer,
    SubmittedAnswer,
    to_submitted_answer,
    AnswerRecord,
    SubmissionResult,
    BatchItem,
    BatchItemResult,
    ScoreSummary,
    SectionAttemptSummary,
    AnswerKeyEntry,
    TranscriptionState,
    TranscriptResult,
)

__all__ = [
    "Module",
    "MatchMode",
    "QuestionType",
    "RecordStatus",
    "ScoreStatus",
    "Question",
    "TextAnswer",
    "ListAnswer",
    "AudioAnswer",
    "SubmittedAnswer",
    "to_submitted_answer",
    "AnswerRecord",
    "SubmissionResult",
    "BatchItem",
    "BatchItemResult",
    "ScoreSummary",
    "SectionAttemptSummary",
    "AnswerKeyEntry",
    "TranscriptionState",
    "TranscriptResult",
]
