"""
Answer evaluation service.

Routes each submitted answer through the matching strategy of its question
type, persists the resulting answer records and reports aggregate scores.
One parameterized service covers all four modules.
"""

import asyncio
import re
from typing import Any, Iterable, List, Optional, Tuple, Union

from ..core.config import Settings, settings as default_settings
from ..core.errors import (
    BackendUnavailable,
    GradingEngineError,
    InvalidIdentifier,
    InvalidReference,
    NotFound,
    ValidationError,
)
from ..core.logging import get_context_logger, get_logger
from ..matching import ExactMatcher, SimilarityScorer, has_candidates, normalize
from ..models.domain import (
    AnswerKeyEntry,
    AnswerRecord,
    AudioAnswer,
    BatchItem,
    BatchItemResult,
    ListAnswer,
    MatchMode,
    Module,
    Question,
    ScoreSummary,
    SectionAttemptSummary,
    SubmissionResult,
    TextAnswer,
    TranscriptResult,
    to_submitted_answer,
)
from ..repositories.question_repository import QuestionRepositoryInterface
from ..repositories.submission_repository import (
    InMemorySubmissionRepository,
    SubmissionRepositoryInterface,
)
from ..transcription.pipeline import TranscriptionPipeline
from .score_aggregator import ScoreAggregator

logger = get_logger(__name__)

Answer = Union[TextAnswer, ListAnswer, AudioAnswer]


class AnswerEvaluationService:
    """
    Service for answer evaluation operations.

    Discrete question types use exact matching; writing and speaking
    questions use similarity scoring with their own configured thresholds.
    Spoken audio is transcribed first.
    """

    def __init__(
        self,
        questions: QuestionRepositoryInterface,
        submissions: Optional[SubmissionRepositoryInterface] = None,
        pipeline: Optional[TranscriptionPipeline] = None,
        settings: Optional[Settings] = None,
        aggregator: Optional[ScoreAggregator] = None,
    ):
        self.settings = settings or default_settings
        self.questions = questions
        self.submissions = submissions or InMemorySubmissionRepository()
        self.pipeline = pipeline
        self.aggregator = aggregator or ScoreAggregator()

        self.exact_matcher = ExactMatcher()
        self.writing_scorer = SimilarityScorer(threshold=self.settings.WRITING_SIMILARITY_THRESHOLD)
        self.speaking_scorer = SimilarityScorer(threshold=self.settings.SPEAKING_SIMILARITY_THRESHOLD)
        self._identifier = re.compile(self.settings.IDENTIFIER_PATTERN)

        logger.info(
            "AnswerEvaluationService initialized",
            extra_data={
                "writing_threshold": self.writing_scorer.threshold,
                "speaking_threshold": self.speaking_scorer.threshold,
                "transcription": pipeline is not None,
            }
        )

    # Resolution

    def validate_identifier(self, field: str, value: Any) -> str:
        """Return ``value`` if it is a well-formed identifier, else raise InvalidIdentifier"""
        if not isinstance(value, str) or not self._identifier.fullmatch(value):
            raise InvalidIdentifier(field, value)
        return value

    async def resolve_question(self, question_id: Any) -> Tuple[Question, List[str]]:
        """
        Look up a question and normalize its reference answer.

        Raises:
            InvalidIdentifier: malformed question id
            NotFound: unknown question
            InvalidReference: no usable reference answer
        """
        question_id = self.validate_identifier("question_id", question_id)
        question = await self.questions.get(question_id)

        candidates = normalize(question.answer)
        if not has_candidates(candidates):
            raise InvalidReference(question_id)
        return question, candidates

    @staticmethod
    def _to_answer(submitted: Any) -> Answer:
        try:
            return to_submitted_answer(submitted)
        except ValueError as e:
            raise ValidationError(str(e), field="answer")

    # Scoring

    def score_text(
        self,
        question: Question,
        candidates: List[str],
        text: str,
        audio_ref: Optional[str] = None,
    ) -> AnswerRecord:
        """Score an already textual answer with the question's strategy"""
        if question.type.match_mode is MatchMode.EXACT:
            return AnswerRecord(
                question_id=question.id,
                submitted_text=text,
                reference_candidates=candidates,
                match_mode=MatchMode.EXACT,
                is_correct=self.exact_matcher.is_correct(text, candidates),
                audio_ref=audio_ref,
            )

        scorer = self.speaking_scorer if question.type.is_spoken else self.writing_scorer
        result = scorer.score(text, candidates)
        return AnswerRecord(
            question_id=question.id,
            submitted_text=text,
            reference_candidates=candidates,
            match_mode=MatchMode.SIMILARITY,
            similarity_percentage=result.percentage,
            is_correct=result.is_correct,
            audio_ref=audio_ref,
        )

    async def transcribe(self, audio: AudioAnswer) -> TranscriptResult:
        """Run the transcription pipeline; errors propagate as TranscriptionError"""
        if self.pipeline is None:
            raise BackendUnavailable("no transcription pipeline configured")
        return await self.pipeline.transcribe(audio.content, audio.mime_type)

    async def _evaluate(self, question_id: Any, submitted: Any) -> Tuple[AnswerRecord, Question]:
        question, candidates = await self.resolve_question(question_id)
        answer = self._to_answer(submitted)

        if isinstance(answer, AudioAnswer):
            if not question.type.is_spoken:
                raise ValidationError(
                    f"Audio answers are not accepted for {question.type.value} questions",
                    field="answer"
                )
            transcript = await self.transcribe(answer)
            record = self.score_text(question, candidates, transcript.transcript, audio_ref=answer.audio_ref)
        else:
            record = self.score_text(question, candidates, answer.comparison_text())

        logger.debug(
            "Answer evaluated",
            extra_data={
                "question_id": question.id,
                "match_mode": record.match_mode.value,
                "similarity_percentage": record.similarity_percentage,
                "is_correct": record.is_correct,
            }
        )
        return record, question

    async def _evaluate_item(self, item: Any) -> Tuple[BatchItemResult, Optional[Module]]:
        question_id = str(item)
        try:
            item = self._to_batch_item(item)
            question_id = str(item.question_id)
            record, question = await self._evaluate(item.question_id, item.answer)
        except GradingEngineError as e:
            logger.warning(
                "Batch item failed",
                extra_data={"question_id": question_id, **e.to_dict()}
            )
            return BatchItemResult(question_id=question_id, error=e.to_dict()), None
        return BatchItemResult(question_id=record.question_id, record=record), question.module

    @staticmethod
    def _to_batch_item(item: Any) -> BatchItem:
        """Accept a BatchItem, a dict or a (question_id, answer) pair"""
        if isinstance(item, BatchItem):
            return item
        if isinstance(item, dict):
            return BatchItem(question_id=item.get("question_id"), answer=item.get("answer"))
        if isinstance(item, (list, tuple)) and len(item) == 2:
            return BatchItem(question_id=item[0], answer=item[1])
        raise ValidationError(
            "Each answer must be a (question_id, answer) pair or an object with question_id",
            field="answers"
        )

    # Stateless checks

    async def check_answer(self, question_id: Any, submitted: Any) -> AnswerRecord:
        """Evaluate one answer without storing it"""
        record, _ = await self._evaluate(question_id, submitted)
        return record

    async def check_answers(self, items: Iterable[Any]) -> List[BatchItemResult]:
        """Evaluate many answers without storing them; failures are reported per item"""
        outcomes = await asyncio.gather(*(self._evaluate_item(item) for item in items))
        return [result for result, _ in outcomes]

    # Submissions

    async def submit_answer(
        self,
        user_id: Any,
        section_id: Any,
        question_id: Any,
        submitted: Any,
    ) -> AnswerRecord:
        """
        Evaluate one answer and upsert it into the user's section result.

        Audio answers go through the two-phase spoken write.
        """
        user_id = self.validate_identifier("user_id", user_id)
        section_id = self.validate_identifier("section_id", section_id)
        answer = self._to_answer(submitted)

        if isinstance(answer, AudioAnswer):
            return await self.submit_spoken_answer(user_id, section_id, question_id, answer)

        record, question = await self._evaluate(question_id, answer)
        await self.submissions.upsert_record(user_id, section_id, record, question.module)

        logger.info(
            "Answer submitted",
            extra_data={
                "user_id": user_id,
                "section_id": section_id,
                "question_id": record.question_id,
                "is_correct": record.is_correct,
            }
        )
        return record

    async def submit_spoken_answer(
        self,
        user_id: Any,
        section_id: Any,
        question_id: Any,
        audio: AudioAnswer,
    ) -> AnswerRecord:
        """
        Transcribe and score a spoken answer.

        A ``processing`` placeholder holding only the audio reference is
        stored first and replaced by the scored record once transcription
        succeeds. On transcription failure the typed error is raised and the
        placeholder is left as is.
        """
        user_id = self.validate_identifier("user_id", user_id)
        section_id = self.validate_identifier("section_id", section_id)
        question, candidates = await self.resolve_question(question_id)
        if not question.type.is_spoken:
            raise ValidationError(
                f"Audio answers are not accepted for {question.type.value} questions",
                field="answer"
            )

        log = get_context_logger(
            __name__, user_id=user_id, section_id=section_id, question_id=question.id
        )

        await self.submissions.upsert_record(
            user_id, section_id, AnswerRecord.processing(question.id, audio.audio_ref), question.module
        )
        log.info("Spoken answer received", extra_data={"bytes": len(audio.content)})

        try:
            transcript = await self.transcribe(audio)
        except GradingEngineError as e:
            log.warning("Spoken answer not scored", extra_data=e.to_dict())
            raise

        record = self.score_text(question, candidates, transcript.transcript, audio_ref=audio.audio_ref)
        await self.submissions.upsert_record(user_id, section_id, record, question.module)

        log.info(
            "Spoken answer scored",
            extra_data={
                "similarity_percentage": record.similarity_percentage,
                "is_correct": record.is_correct,
            }
        )
        return record

    async def submit_section(
        self,
        user_id: Any,
        section_id: Any,
        items: Iterable[Any],
    ) -> List[BatchItemResult]:
        """
        Evaluate a batch of answers for one section and store the successes.

        Items are (question_id, answer) pairs, dicts or ``BatchItem``s.
        Each is resolved independently and the returned list keeps their
        order; a failing item is reported in place and never aborts the rest.
        """
        user_id = self.validate_identifier("user_id", user_id)
        section_id = self.validate_identifier("section_id", section_id)
        items = list(items)
        if not items:
            raise ValidationError("At least one answer is required", field="answers")

        existing = await self.submissions.get(user_id, section_id)
        outcomes = await asyncio.gather(*(self._evaluate_item(item) for item in items))

        results = [result for result, _ in outcomes]
        records = [result.record for result in results if result.ok]
        module = next((m for _, m in outcomes if m is not None), None)

        if records:
            written = False
            if existing is None:
                written = await self.submissions.replace_all(user_id, section_id, records, module)
            if not written:
                for record in records:
                    await self.submissions.upsert_record(user_id, section_id, record, module)

        logger.info(
            "Section submitted",
            extra_data={
                "user_id": user_id,
                "section_id": section_id,
                "items": len(results),
                "failed": sum(1 for result in results if not result.ok),
            }
        )
        return results

    # Reporting

    async def get_submission(self, user_id: Any, section_id: Any) -> SubmissionResult:
        user_id = self.validate_identifier("user_id", user_id)
        section_id = self.validate_identifier("section_id", section_id)

        result = await self.submissions.get(user_id, section_id)
        if result is None:
            raise NotFound("submission", f"{user_id}/{section_id}")
        return result

    async def section_summary(self, user_id: Any, section_id: Any) -> ScoreSummary:
        """Percentage, status and band score of a user's section result"""
        result = await self.get_submission(user_id, section_id)
        total = await self.questions.count_by_section(result.section_id)
        if total == 0:
            raise NotFound("section", result.section_id)
        return self.aggregator.aggregate(result.answers, total)

    async def attempt_history(self, user_id: Any) -> List[SectionAttemptSummary]:
        """All of a user's section results, newest first"""
        user_id = self.validate_identifier("user_id", user_id)
        results = await self.submissions.list_for_user(user_id)

        totals = {}
        for result in results:
            if result.section_id not in totals:
                totals[result.section_id] = await self.questions.count_by_section(result.section_id)

        return self.aggregator.summarize_attempts(results, totals)

    async def section_answer_key(self, section_id: Any) -> List[AnswerKeyEntry]:
        """Numbered, normalized correct answers of a section"""
        section_id = self.validate_identifier("section_id", section_id)
        questions = await self.questions.list_by_section(section_id)
        if not questions:
            raise NotFound("section", section_id)

        return [
            AnswerKeyEntry(number=index, question_id=question.id, candidates=normalize(question.answer))
            for index, question in enumerate(questions, start=1)
        ]


# Factory function
def get_evaluation_service(
    questions: QuestionRepositoryInterface,
    submissions: Optional[SubmissionRepositoryInterface] = None,
    pipeline: Optional[TranscriptionPipeline] = None,
) -> AnswerEvaluationService:
    """Create evaluation service instance"""
    return AnswerEvaluationService(questions, submissions, pipeline)
