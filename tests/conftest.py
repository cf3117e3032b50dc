"""
Pytest configuration and fixtures.

Provides question fixtures, repositories and fake transcription parts so
tests never need ffmpeg or a cloud speech service.
"""

import time
from pathlib import Path
from typing import List, Optional

import pytest

from answer_grader.core.config import Settings
from answer_grader.core.errors import TranscodeFailed
from answer_grader.models import Module, Question, QuestionType
from answer_grader.repositories import (
    InMemoryQuestionRepository,
    InMemorySubmissionRepository,
    SqlSubmissionRepository,
    create_db_engine,
)
from answer_grader.services import AnswerEvaluationService
from answer_grader.transcription import (
    CanonicalAudio,
    FfmpegTranscoder,
    TranscriptionBackend,
    TranscriptionPipeline,
)


class FakeTranscoder(FfmpegTranscoder):
    """Accepts any payload except empty or ``corrupt``-prefixed bytes"""

    def __init__(self):
        super().__init__(ffmpeg_binary="ffmpeg", sample_rate=16000, timeout=1)
        self.workdirs: List[Path] = []

    def transcode(self, content, encoding_hint, workdir):
        self.workdirs.append(workdir)
        if not content or content.startswith(b"corrupt"):
            raise TranscodeFailed("Invalid data found when processing input")
        path = workdir / "canonical.wav"
        path.write_bytes(content)
        return CanonicalAudio(path=path, content=content, sample_rate=16000, frames=len(content) // 2)


class FakeBackend(TranscriptionBackend):
    """Returns canned segments, raises a given error or sleeps past a timeout"""

    name = "fake"

    def __init__(self, segments=None, error: Optional[Exception] = None, delay: float = 0.0):
        self.segments = segments if segments is not None else [["hello world"]]
        self.error = error
        self.delay = delay
        self.calls: List[CanonicalAudio] = []

    def recognize(self, audio, timeout):
        self.calls.append(audio)
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return self.segments


@pytest.fixture
def test_settings() -> Settings:
    """Settings with the default thresholds"""
    return Settings(WRITING_SIMILARITY_THRESHOLD=0.6, SPEAKING_SIMILARITY_THRESHOLD=0.7)


@pytest.fixture
def sample_questions() -> List[Question]:
    """Questions covering every question type and reference shape"""
    return [
        Question(id="q1", section_id="listening-1", module=Module.LISTENING, type=QuestionType.MCQ,
                 answer="Paris", position=1),
        Question(id="q2", section_id="listening-1", module=Module.LISTENING, type=QuestionType.FILL_BLANK,
                 answer=['["cat","dog"]'], position=2),
        Question(id="q3", section_id="listening-1", module=Module.LISTENING, type=QuestionType.TRUE_FALSE,
                 answer=["True"], position=3),
        Question(id="q4", section_id="listening-1", module=Module.LISTENING, type=QuestionType.FILL_BLANK,
                 answer="red apple", position=4),
        Question(id="q5", section_id="listening-1", module=Module.LISTENING, type=QuestionType.MCQ,
                 answer="B", position=5),
        Question(id="w1", section_id="writing-1", module=Module.WRITING, type=QuestionType.WRITING,
                 answer="A cat sat on a mat"),
        Question(id="w2", section_id="writing-1", module=Module.WRITING, type=QuestionType.WRITING,
                 answer='["The weather is nice today", "It is a nice day"]'),
        Question(id="s1", section_id="speaking-1", module=Module.SPEAKING, type=QuestionType.SPEAKING,
                 answer="hello world"),
        Question(id="empty", section_id="broken-1", module=Module.READING, type=QuestionType.MCQ,
                 answer=None),
    ]


@pytest.fixture
def question_repository(sample_questions) -> InMemoryQuestionRepository:
    return InMemoryQuestionRepository(sample_questions)


@pytest.fixture
def submission_repository() -> InMemorySubmissionRepository:
    return InMemorySubmissionRepository()


@pytest.fixture
def sql_submission_repository() -> SqlSubmissionRepository:
    """SQLite in-memory repository"""
    return SqlSubmissionRepository(create_db_engine("sqlite://"))


@pytest.fixture(params=["memory", "sql"])
def any_submission_repository(request):
    """Each submission repository implementation"""
    if request.param == "memory":
        return InMemorySubmissionRepository()
    return SqlSubmissionRepository(create_db_engine("sqlite://"))


@pytest.fixture
def fake_transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def pipeline(fake_backend, fake_transcoder) -> TranscriptionPipeline:
    return TranscriptionPipeline(fake_backend, transcoder=fake_transcoder, timeout=2)


@pytest.fixture
def service(question_repository, submission_repository, pipeline, test_settings) -> AnswerEvaluationService:
    return AnswerEvaluationService(
        question_repository,
        submission_repository,
        pipeline=pipeline,
        settings=test_settings,
    )
