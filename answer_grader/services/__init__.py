"""Services package"""

from .evaluation_service import AnswerEvaluationService, get_evaluation_service
from .score_aggregator import ScoreAggregator, aggregate, band_score, score_status

__all__ = [
    "AnswerEvaluationService",
    "get_evaluation_service",
    "ScoreAggregator",
    "aggregate",
    "band_score",
    "score_status",
]
