"""Repositories package"""

from .question_repository import (
    QuestionRepositoryInterface,
    InMemoryQuestionRepository,
    FileSystemQuestionRepository,
    get_question_repository,
)
from .submission_repository import (
    SubmissionRepositoryInterface,
    InMemorySubmissionRepository,
    SqlSubmissionRepository,
    create_db_engine,
)

__all__ = [
    "QuestionRepositoryInterface",
    "InMemoryQuestionRepository",
    "FileSystemQuestionRepository",
    "get_question_repository",
    "SubmissionRepositoryInterface",
    "InMemorySubmissionRepository",
    "SqlSubmissionRepository",
    "create_db_engine",
]
