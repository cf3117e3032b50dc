"""
Tests for exact matching and similarity scoring.
"""

import pytest
from pydantic import ValidationError

from answer_grader.matching import (
    ExactMatcher,
    SimilarityScorer,
    dice_coefficient,
    is_correct,
    normalize,
    to_percentage,
)


class TestExactMatcher:
    """Discrete question matching"""

    def test_case_and_whitespace_insensitive(self):
        assert is_correct("  Paris ", ["paris"])

    def test_matches_any_candidate(self):
        assert ExactMatcher().is_correct("dog", ["cat", "Dog"])

    def test_no_partial_credit(self):
        assert not is_correct("Pari", ["Paris"])

    def test_list_submission_joined_with_single_space(self):
        assert is_correct(["Red", "apple"], ["red apple"])
        assert not is_correct(["apple", "red"], ["red apple"])

    def test_empty_candidates_never_match(self):
        assert not is_correct("anything", [])

    def test_double_encoded_reference(self):
        candidates = normalize(['["cat","dog"]'])
        assert candidates == ["cat", "dog"]
        assert is_correct("Dog", candidates)


class TestDiceCoefficient:
    """Bigram similarity coefficient"""

    def test_known_values(self):
        assert dice_coefficient("healed", "sealed") == pytest.approx(0.8)
        assert dice_coefficient("night", "nacht") == pytest.approx(0.25)

    def test_identical_strings(self):
        assert dice_coefficient("same", "same") == 1.0
        assert dice_coefficient("a", "a") == 1.0

    def test_whitespace_and_case_ignored(self):
        assert dice_coefficient("A B C", "abc") == 1.0

    def test_single_characters_that_differ(self):
        assert dice_coefficient("a", "b") == 0.0

    @pytest.mark.parametrize("first,second", [
        ("The cat sat on the mat", "A cat sat on a mat"),
        ("healed", "sealed"),
        ("completely different", "nothing alike here"),
        ("ab", "abc"),
    ])
    def test_symmetric(self, first, second):
        assert dice_coefficient(first, second) == dice_coefficient(second, first)


def test_to_percentage_rounds_half_up():
    assert to_percentage(0.125) == 13
    assert to_percentage(0.5) == 50
    assert to_percentage(1.0) == 100


class TestSimilarityScorer:
    """Free-text and transcript scoring"""

    def test_writing_example_is_correct_at_sixty(self):
        scorer = SimilarityScorer(threshold=0.6)
        result = scorer.score("The cat sat on the mat", ["A cat sat on a mat"])
        assert result.percentage == 64
        assert result.is_correct

    def test_same_answer_fails_stricter_threshold(self):
        scorer = SimilarityScorer(threshold=0.7)
        result = scorer.score("The cat sat on the mat", ["A cat sat on a mat"])
        assert result.percentage == 64
        assert not result.is_correct

    @pytest.mark.parametrize("threshold", [0.0, 0.6, 0.7, 1.0])
    def test_identical_answer_always_correct(self, threshold):
        result = SimilarityScorer(threshold=threshold).score("Hello World", ["hello world"])
        assert result.percentage == 100
        assert result.is_correct

    def test_maximum_across_candidates(self):
        result = SimilarityScorer(threshold=0.7).score("healed", ["night", "sealed"])
        assert result.percentage == 80
        assert result.best_candidate == "sealed"
        assert result.is_correct

    def test_symmetric_percentage(self):
        scorer = SimilarityScorer(threshold=0.6)
        a, b = "The weather is nice today", "It is a nice day"
        assert scorer.score(a, [b]).percentage == scorer.score(b, [a]).percentage

    @pytest.mark.parametrize("submitted,candidates", [
        ("", ["anything"]),
        ("   ", ["anything"]),
        ("anything", []),
        ("anything", ["", "  "]),
    ])
    def test_degenerate_inputs(self, submitted, candidates):
        result = SimilarityScorer(threshold=0.0).score(submitted, candidates)
        assert result.percentage == 0
        assert not result.is_correct

    def test_threshold_is_validated(self):
        with pytest.raises(ValidationError):
            SimilarityScorer(threshold=1.5)
