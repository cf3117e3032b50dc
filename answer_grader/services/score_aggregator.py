"""
Score aggregation for result reporting.

Derives percentage, qualitative status and band score from stored answer
records. The same status tiers and band table apply to every module.
"""

import math
from typing import Dict, List, Sequence

from ..core.errors import ValidationError
from ..core.logging import get_logger
from ..models.domain import (
    AnswerRecord,
    ScoreStatus,
    ScoreSummary,
    SectionAttemptSummary,
    SubmissionResult,
)

logger = get_logger(__name__)

# (minimum correct answers, band score), highest first
BAND_TABLE: List[tuple[int, float]] = [
    (39, 9.0),
    (37, 8.5),
    (35, 8.0),
    (33, 7.5),
    (30, 7.0),
    (27, 6.5),
    (23, 6.0),
    (19, 5.5),
    (15, 5.0),
    (12, 4.5),
    (9, 4.0),
    (6, 3.5),
    (3, 3.0),
]
BAND_FLOOR = 2.5

# (minimum percentage, status), highest first
STATUS_TIERS: List[tuple[int, ScoreStatus]] = [
    (80, ScoreStatus.EXCELLENT),
    (60, ScoreStatus.GOOD),
    (40, ScoreStatus.AVERAGE),
]


def band_score(correct_answers: int) -> float:
    """Half-point band score for a raw correct-answer count."""
    for minimum, band in BAND_TABLE:
        if correct_answers >= minimum:
            return band
    return BAND_FLOOR


def score_status(percentage: int) -> ScoreStatus:
    for minimum, status in STATUS_TIERS:
        if percentage >= minimum:
            return status
    return ScoreStatus.POOR


class ScoreAggregator:
    """Summarizes answer records into reporting figures"""

    def aggregate(self, records: Sequence[AnswerRecord], total_questions: int) -> ScoreSummary:
        """
        Summarize a set of records.

        Args:
            records: Answer records of one submission
            total_questions: Number of questions in the section

        Returns:
            ScoreSummary with percentage, status and band score

        Raises:
            ValidationError: If total_questions is not positive
        """
        if total_questions <= 0:
            raise ValidationError("total_questions must be positive", field="total_questions")

        correct = sum(1 for record in records if record.is_correct)
        percentage = int(math.floor(100 * correct / total_questions + 0.5))

        return ScoreSummary(
            percentage=percentage,
            status=score_status(percentage),
            band_score=band_score(correct),
            total_questions=total_questions,
            correct_answers=correct,
            wrong_answers=total_questions - correct,
        )

    def summarize_attempts(
        self,
        results: Sequence[SubmissionResult],
        total_questions_by_section: Dict[str, int],
    ) -> List[SectionAttemptSummary]:
        """
        Build a user's result history, newest first.

        Attempts are numbered so that the oldest is 1. Results whose section
        has no known question count are skipped.
        """
        ordered = sorted(results, key=lambda r: r.created_at, reverse=True)
        summaries = []

        for index, result in enumerate(ordered):
            total = total_questions_by_section.get(result.section_id, 0)
            if total <= 0:
                logger.warning(
                    "Skipping attempt without questions",
                    extra_data={"user_id": result.user_id, "section_id": result.section_id}
                )
                continue

            summaries.append(
                SectionAttemptSummary(
                    user_id=result.user_id,
                    section_id=result.section_id,
                    module=result.module,
                    attempt_number=len(ordered) - index,
                    submitted_at=result.created_at,
                    summary=self.aggregate(result.answers, total),
                )
            )

        return summaries


def aggregate(records: Sequence[AnswerRecord], total_questions: int) -> ScoreSummary:
    """Module-level shortcut for ``ScoreAggregator().aggregate``."""
    return ScoreAggregator().aggregate(records, total_questions)
