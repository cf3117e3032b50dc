"""
Domain models for the answer grading engine.

These are the core entities exchanged between the engine and its callers.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Module(str, Enum):
    """Assessment modules"""
    READING = "reading"
    LISTENING = "listening"
    WRITING = "writing"
    SPEAKING = "speaking"


class MatchMode(str, Enum):
    """How a submitted answer is compared to its reference"""
    EXACT = "exact"
    SIMILARITY = "similarity"


class QuestionType(str, Enum):
    """Question types and the matching strategy each one uses"""
    MCQ = "mcq"
    TRUE_FALSE = "true-false"
    FILL_BLANK = "fill-blank"
    WRITING = "writing"
    SPEAKING = "speaking"

    @property
    def match_mode(self) -> MatchMode:
        if self in (QuestionType.WRITING, QuestionType.SPEAKING):
            return MatchMode.SIMILARITY
        return MatchMode.EXACT

    @property
    def is_spoken(self) -> bool:
        return self is QuestionType.SPEAKING


class RecordStatus(str, Enum):
    """Lifecycle of a stored answer record"""
    SCORED = "scored"
    PROCESSING = "processing"


class ScoreStatus(str, Enum):
    """Qualitative result tiers"""
    EXCELLENT = "Excellent"
    GOOD = "Good"
    AVERAGE = "Average"
    POOR = "Poor"


class Question(BaseModel):
    """A question and its stored reference answer (read-only to the engine)"""
    id: str
    section_id: str
    module: Module
    type: QuestionType
    text: Optional[str] = None
    answer: Any = Field(None, description="Raw reference answer: str, list or JSON-encoded list")
    position: Optional[int] = None


# Submitted answers, resolved once at the boundary

class TextAnswer(BaseModel):
    """Plain text submission"""
    kind: Literal["text"] = "text"
    text: str

    def comparison_text(self) -> str:
        return self.text


class ListAnswer(BaseModel):
    """Multi-value submission (e.g. multi-blank), compared as one string"""
    kind: Literal["list"] = "list"
    parts: List[str]

    @field_validator("parts", mode="before")
    @classmethod
    def stringify_parts(cls, v):
        return ["" if part is None else str(part) for part in v]

    def comparison_text(self) -> str:
        return " ".join(self.parts)


class AudioAnswer(BaseModel):
    """Recorded spoken response"""
    kind: Literal["audio"] = "audio"
    content: bytes = Field(repr=False)
    mime_type: Optional[str] = Field(None, description="Declared MIME type or container, e.g. audio/webm")
    audio_ref: Optional[str] = Field(None, description="Where the upload layer stored the original file")


SubmittedAnswer = Annotated[
    Union[TextAnswer, ListAnswer, AudioAnswer],
    Field(discriminator="kind"),
]


def to_submitted_answer(value: Any) -> Union[TextAnswer, ListAnswer, AudioAnswer]:
    """Resolve a raw submitted value into its tagged variant"""
    if isinstance(value, (TextAnswer, ListAnswer, AudioAnswer)):
        return value
    if value is None:
        raise ValueError("A submitted answer is required")
    if isinstance(value, (bytes, bytearray)):
        return AudioAnswer(content=bytes(value))
    if isinstance(value, (list, tuple)):
        return ListAnswer(parts=list(value))
    return TextAnswer(text=str(value))


class AnswerRecord(BaseModel):
    """Outcome of evaluating one submitted answer"""

    model_config = ConfigDict(frozen=True)

    question_id: str
    submitted_text: str = ""
    reference_candidates: List[str] = Field(default_factory=list)
    match_mode: MatchMode
    similarity_percentage: Optional[int] = Field(None, ge=0, le=100)
    is_correct: bool = False
    audio_ref: Optional[str] = None
    status: RecordStatus = RecordStatus.SCORED
    evaluated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def processing(cls, question_id: str, audio_ref: Optional[str]) -> "AnswerRecord":
        """Unscored placeholder written before transcription completes"""
        return cls(
            question_id=question_id,
            match_mode=MatchMode.SIMILARITY,
            audio_ref=audio_ref,
            status=RecordStatus.PROCESSING,
        )


class SubmissionResult(BaseModel):
    """All answer records of one user's attempt at one section"""
    user_id: str
    section_id: str
    module: Optional[Module] = None
    answers: List[AnswerRecord] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def record_for(self, question_id: str) -> Optional[AnswerRecord]:
        for record in self.answers:
            if record.question_id == question_id:
                return record
        return None

    @property
    def correct_count(self) -> int:
        return sum(1 for record in self.answers if record.is_correct)


class BatchItem(BaseModel):
    """One (question, answer) pair of a batch submission"""
    question_id: Any
    answer: Any = None


class BatchItemResult(BaseModel):
    """Per-item outcome of a batch: a record or an error, never both"""
    question_id: str
    record: Optional[AnswerRecord] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ScoreSummary(BaseModel):
    """Aggregate result over a set of answer records"""
    percentage: int
    status: ScoreStatus
    band_score: float
    total_questions: int
    correct_answers: int
    wrong_answers: int


class SectionAttemptSummary(BaseModel):
    """One row of a user's result history"""
    user_id: str
    section_id: str
    module: Optional[Module] = None
    attempt_number: int
    submitted_at: datetime
    summary: ScoreSummary


class AnswerKeyEntry(BaseModel):
    """Numbered correct answers of a section"""
    number: int
    question_id: str
    candidates: List[str]


class TranscriptionState(str, Enum):
    """States of the transcription pipeline"""
    RECEIVED = "received"
    TRANSCODED = "transcoded"
    SUBMITTED = "submitted"
    TRANSCRIBED = "transcribed"
    FAILED = "failed"


class TranscriptResult(BaseModel):
    """Successful transcription output"""
    transcript: str
    segments: List[str] = Field(default_factory=list)
    state: TranscriptionState = TranscriptionState.TRANSCRIBED
