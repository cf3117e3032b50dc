"""
Tests for score aggregation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from answer_grader.core.errors import ValidationError
from answer_grader.models import AnswerRecord, MatchMode, ScoreStatus, SubmissionResult
from answer_grader.services import ScoreAggregator, aggregate, band_score, score_status


def _records(correct, wrong=0):
    return [
        AnswerRecord(question_id=f"q{n}", match_mode=MatchMode.EXACT, is_correct=n < correct)
        for n in range(correct + wrong)
    ]


@pytest.mark.parametrize("correct,band", [
    (40, 9.0),
    (39, 9.0),
    (38, 8.5),
    (30, 7.0),
    (23, 6.0),
    (15, 5.0),
    (3, 3.0),
    (2, 2.5),
    (0, 2.5),
])
def test_band_score(correct, band):
    assert band_score(correct) == band


@pytest.mark.parametrize("percentage,status", [
    (100, ScoreStatus.EXCELLENT),
    (80, ScoreStatus.EXCELLENT),
    (79, ScoreStatus.GOOD),
    (60, ScoreStatus.GOOD),
    (40, ScoreStatus.AVERAGE),
    (39, ScoreStatus.POOR),
    (0, ScoreStatus.POOR),
])
def test_score_status(percentage, status):
    assert score_status(percentage) == status


class TestAggregate:
    """Summaries of one section result"""

    def test_full_marks(self):
        summary = aggregate(_records(39, 1), 40)

        assert summary.percentage == 98
        assert summary.status == ScoreStatus.EXCELLENT
        assert summary.band_score == 9.0
        assert summary.correct_answers == 39
        assert summary.wrong_answers == 1

    def test_nothing_correct(self):
        summary = aggregate(_records(0, 5), 5)

        assert summary.percentage == 0
        assert summary.status == ScoreStatus.POOR
        assert summary.band_score == 2.5

    def test_unanswered_questions_count_as_wrong(self):
        summary = aggregate(_records(2), 3)

        assert summary.percentage == 67
        assert summary.wrong_answers == 1

    def test_percentage_rounds_half_up(self):
        assert aggregate(_records(1), 8).percentage == 13

    @pytest.mark.parametrize("total", [0, -1])
    def test_total_must_be_positive(self, total):
        with pytest.raises(ValidationError):
            aggregate([], total)


def test_attempt_history_numbering():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    results = [
        SubmissionResult(user_id="u", section_id=f"s{n}", answers=_records(n), created_at=start + timedelta(days=n))
        for n in (1, 3, 2)
    ]

    history = ScoreAggregator().summarize_attempts(results, {"s1": 4, "s2": 4, "s3": 4})

    assert [h.section_id for h in history] == ["s3", "s2", "s1"]
    assert [h.attempt_number for h in history] == [3, 2, 1]
    assert [h.summary.percentage for h in history] == [75, 50, 25]


def test_attempt_history_skips_sections_without_questions():
    results = [SubmissionResult(user_id="u", section_id="gone", answers=_records(1))]
    assert ScoreAggregator().summarize_attempts(results, {}) == []
