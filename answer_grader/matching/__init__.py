"""
Answer matching strategies.

- normalize: canonical candidate list from a stored reference answer
- ExactMatcher: discrete question types
- SimilarityScorer: free-text and transcribed answers
"""

from .normalizer import normalize, has_candidates, join_submitted, canonical
from .exact import ExactMatcher, is_correct
from .similarity import SimilarityScorer, SimilarityScore, dice_coefficient, to_percentage

__all__ = [
    "normalize",
    "has_candidates",
    "join_submitted",
    "canonical",
    "ExactMatcher",
    "is_correct",
    "SimilarityScorer",
    "SimilarityScore",
    "dice_coefficient",
    "to_percentage",
]
