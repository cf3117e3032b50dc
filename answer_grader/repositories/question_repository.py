"""
Question repository for reference answer lookup.

Questions are owned by the authoring side; the engine only reads them.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional
import json

from pydantic import ValidationError as PydanticValidationError

from ..models.domain import Module, Question
from ..core.errors import NotFound
from ..core.logging import get_logger
from ..core.config import settings

logger = get_logger(__name__)


class QuestionRepositoryInterface(ABC):
    """Abstract interface for question lookup"""

    @abstractmethod
    async def get(self, question_id: str) -> Question:
        """Get question by ID"""
        pass

    @abstractmethod
    async def list_by_section(self, section_id: str) -> List[Question]:
        """List the questions of a section, in position order"""
        pass

    async def exists(self, question_id: str) -> bool:
        """Check if question exists"""
        try:
            await self.get(question_id)
        except NotFound:
            return False
        return True

    async def count_by_section(self, section_id: str) -> int:
        """Number of questions in a section"""
        return len(await self.list_by_section(section_id))


def _position_order(questions: Iterable[Question]) -> List[Question]:
    indexed = list(enumerate(questions))
    indexed.sort(key=lambda pair: (pair[1].position is None, pair[1].position or 0, pair[0]))
    return [question for _, question in indexed]


class InMemoryQuestionRepository(QuestionRepositoryInterface):
    """Question repository backed by a dict; used by callers that already hold the questions"""

    def __init__(self, questions: Optional[Iterable[Question]] = None):
        self._questions: Dict[str, Question] = {}
        for question in questions or []:
            self.add(question)

    def add(self, question: Question) -> None:
        self._questions[question.id] = question

    async def get(self, question_id: str) -> Question:
        question = self._questions.get(question_id)
        if question is None:
            raise NotFound("question", question_id)
        return question

    async def list_by_section(self, section_id: str) -> List[Question]:
        return _position_order(q for q in self._questions.values() if q.section_id == section_id)


class FileSystemQuestionRepository(QuestionRepositoryInterface):
    """
    File system-based question repository.

    Each section is a ``<section_id>.json`` file:

        {"module": "listening", "questions": [{"id": "...", "type": "mcq", "answer": "..."}]}

    The section id and module are filled in from the file when a question
    omits them.
    """

    def __init__(self, questions_dir: Optional[Path] = None):
        self.questions_dir = questions_dir or Path(settings.QUESTIONS_DIR)
        self.questions_dir.mkdir(exist_ok=True, parents=True)

        # Cache of parsed sections
        self._sections: Dict[str, List[Question]] = {}
        self._index: Dict[str, Question] = {}

        logger.info(
            "Initialized FileSystemQuestionRepository",
            extra_data={"questions_dir": str(self.questions_dir)}
        )

    async def get(self, question_id: str) -> Question:
        if question_id not in self._index:
            for section_file in self.questions_dir.glob("*.json"):
                if section_file.stem not in self._sections:
                    self._load_section(section_file)
                if question_id in self._index:
                    break

        question = self._index.get(question_id)
        if question is None:
            logger.warning(
                "Question not found",
                extra_data={"question_id": question_id}
            )
            raise NotFound("question", question_id)
        return question

    async def list_by_section(self, section_id: str) -> List[Question]:
        if section_id not in self._sections:
            section_file = self.questions_dir / f"{section_id}.json"
            if not section_file.exists():
                return []
            self._load_section(section_file)
        return list(self._sections[section_id])

    def _load_section(self, section_file: Path) -> None:
        section_id = section_file.stem
        questions: List[Question] = []

        try:
            with open(section_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(
                "Failed to load section file",
                extra_data={"section_id": section_id, "error": str(e)}
            )
            self._sections[section_id] = questions
            return

        if isinstance(data, list):
            data = {"questions": data}
        module = data.get("module")

        for raw in data.get("questions", []):
            try:
                question = Question(
                    **{"section_id": section_id, "module": module or Module.READING, **raw}
                )
            except (PydanticValidationError, TypeError) as e:
                logger.warning(
                    "Skipping malformed question",
                    extra_data={"section_id": section_id, "error": str(e)}
                )
                continue
            questions.append(question)
            self._index[question.id] = question

        self._sections[section_id] = _position_order(questions)

        logger.debug(
            "Section loaded",
            extra_data={"section_id": section_id, "count": len(questions)}
        )


# Singleton instance
_question_repository: Optional[FileSystemQuestionRepository] = None


def get_question_repository() -> FileSystemQuestionRepository:
    """Get question repository instance (singleton)"""
    global _question_repository

    if _question_repository is None:
        _question_repository = FileSystemQuestionRepository()

    return _question_repository
