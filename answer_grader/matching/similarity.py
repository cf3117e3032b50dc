"""
Similarity scoring for free-text and transcribed answers.

The similarity coefficient is the Dice coefficient over character bigrams
(counted with multiplicity). Both sides are trimmed, lower-cased and
stripped of all whitespace before bigrams are taken, so word spacing does
not affect the score.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from typing import Any, ClassVar

from pydantic import BaseModel, Field

from .normalizer import canonical, join_submitted

_WHITESPACE = re.compile(r"\s+")


class SimilarityScore(BaseModel):
    """Best similarity of a submission across all candidates"""
    similarity: float = Field(0.0, ge=0.0, le=1.0)
    percentage: int = Field(0, ge=0, le=100)
    is_correct: bool = False
    best_candidate: str | None = None


def _bigrams(text: str) -> Counter:
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def dice_coefficient(first: str, second: str) -> float:
    """
    Bigram Dice coefficient of two strings in [0, 1].

    Identical strings score 1.0. Differing strings shorter than two
    characters (after whitespace removal) have no bigrams and score 0.0.
    """
    first = _WHITESPACE.sub("", canonical(first))
    second = _WHITESPACE.sub("", canonical(second))

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = _bigrams(first)
    second_bigrams = _bigrams(second)
    overlap = sum((first_bigrams & second_bigrams).values())

    return (2.0 * overlap) / (len(first) + len(second) - 2)


def to_percentage(similarity: float) -> int:
    """Round a [0, 1] similarity to a whole percentage, halves rounding up."""
    return int(math.floor(similarity * 100 + 0.5))


class SimilarityScorer(BaseModel):
    """
    Scores a submission against its reference candidates.

    Attributes:
        threshold: Minimum similarity (0..1) for the answer to count as
            correct. Writing and speaking use different values, taken from
            configuration by the evaluation service.
    """

    match_type: ClassVar[str] = "similarity"

    threshold: float = Field(..., ge=0.0, le=1.0)

    def score(self, submitted: Any, candidates: list[str]) -> SimilarityScore:
        """
        Compute the maximum similarity across candidates.

        Args:
            submitted: Submitted string, or a list joined with single spaces
            candidates: Normalized reference candidates

        Returns:
            SimilarityScore; empty input yields 0% and incorrect
        """
        student_value = join_submitted(submitted)
        if not student_value.strip() or not candidates:
            return SimilarityScore()

        best = 0.0
        best_candidate = None
        for candidate in candidates:
            if not candidate.strip():
                continue
            similarity = dice_coefficient(student_value, candidate)
            if best_candidate is None or similarity > best:
                best = similarity
                best_candidate = candidate

        return SimilarityScore(
            similarity=best,
            percentage=to_percentage(best),
            is_correct=best_candidate is not None and best >= self.threshold,
            best_candidate=best_candidate,
        )
