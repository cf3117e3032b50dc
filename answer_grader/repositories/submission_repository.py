"""
Submission result persistence.

A submission result holds at most one answer record per question for a
(user, section) pair. It is only ever mutated through ``upsert_record``,
a single atomic "replace the record with this question id, or append"
operation, so concurrent submissions for the same user and section cannot
lose each other's updates. ``replace_all`` writes a whole answer list and
only succeeds when no result exists yet.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from contextlib import nullcontext
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    select,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from ..core.config import settings
from ..core.logging import get_logger
from ..models.domain import AnswerRecord, Module, SubmissionResult

logger = get_logger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionRepositoryInterface(ABC):
    """Abstract interface for submission result storage"""

    @abstractmethod
    async def get(self, user_id: str, section_id: str) -> Optional[SubmissionResult]:
        """Fetch the result of a (user, section) pair, None if absent"""
        pass

    @abstractmethod
    async def upsert_record(
        self,
        user_id: str,
        section_id: str,
        record: AnswerRecord,
        module: Optional[Module] = None,
    ) -> None:
        """Atomically replace the record with the same question id, or append it"""
        pass

    @abstractmethod
    async def replace_all(
        self,
        user_id: str,
        section_id: str,
        records: Sequence[AnswerRecord],
        module: Optional[Module] = None,
    ) -> bool:
        """Create a result with these records; False if one already exists"""
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[SubmissionResult]:
        """All results of a user, newest first"""
        pass


class InMemorySubmissionRepository(SubmissionRepositoryInterface):
    """Process-local storage guarded by a lock"""

    def __init__(self):
        self._results: Dict[Tuple[str, str], SubmissionResult] = {}
        self._lock = asyncio.Lock()

    async def get(self, user_id: str, section_id: str) -> Optional[SubmissionResult]:
        result = self._results.get((user_id, section_id))
        return result.model_copy(deep=True) if result else None

    async def upsert_record(
        self,
        user_id: str,
        section_id: str,
        record: AnswerRecord,
        module: Optional[Module] = None,
    ) -> None:
        async with self._lock:
            result = self._results.get((user_id, section_id))
            if result is None:
                result = SubmissionResult(user_id=user_id, section_id=section_id, module=module)
                self._results[(user_id, section_id)] = result

            for index, existing in enumerate(result.answers):
                if existing.question_id == record.question_id:
                    result.answers[index] = record
                    break
            else:
                result.answers.append(record)
            result.updated_at = _utcnow()

    async def replace_all(
        self,
        user_id: str,
        section_id: str,
        records: Sequence[AnswerRecord],
        module: Optional[Module] = None,
    ) -> bool:
        async with self._lock:
            if (user_id, section_id) in self._results:
                return False
            self._results[(user_id, section_id)] = SubmissionResult(
                user_id=user_id,
                section_id=section_id,
                module=module,
                answers=_dedupe(records),
            )
            return True

    async def list_for_user(self, user_id: str) -> List[SubmissionResult]:
        results = [r.model_copy(deep=True) for (uid, _), r in self._results.items() if uid == user_id]
        results.sort(key=lambda r: r.created_at, reverse=True)
        return results


def _dedupe(records: Sequence[AnswerRecord]) -> List[AnswerRecord]:
    """Keep first position per question id, last record wins"""
    ordered: Dict[str, AnswerRecord] = {}
    for record in records:
        ordered[record.question_id] = record
    return list(ordered.values())


# SQL storage

Base = declarative_base()


class SubmissionResultRow(Base):
    __tablename__ = "submission_results"
    __table_args__ = (UniqueConstraint("user_id", "section_id", name="uq_submission_user_section"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, index=True)
    section_id = Column(String(128), nullable=False)
    module = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class AnswerRecordRow(Base):
    __tablename__ = "answer_records"
    __table_args__ = (
        UniqueConstraint("user_id", "section_id", "question_id", name="uq_answer_user_section_question"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False)
    section_id = Column(String(128), nullable=False)
    question_id = Column(String(128), nullable=False)
    position = Column(Integer, nullable=False)
    submitted_text = Column(Text, nullable=False, default="")
    reference_candidates = Column(JSON, nullable=False, default=list)
    match_mode = Column(String(16), nullable=False)
    similarity_percentage = Column(Integer, nullable=True)
    is_correct = Column(Boolean, nullable=False, default=False)
    audio_ref = Column(String(512), nullable=True)
    status = Column(String(16), nullable=False)
    evaluated_at = Column(DateTime(timezone=True), nullable=False)


_RECORD_FIELDS = (
    "submitted_text",
    "reference_candidates",
    "match_mode",
    "similarity_percentage",
    "is_correct",
    "audio_ref",
    "status",
    "evaluated_at",
)


def create_db_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """Engine for DATABASE_URL, an in-memory SQLite database when unset"""
    url = database_url or settings.DATABASE_URL or "sqlite://"
    kwargs = {"echo": settings.DATABASE_ECHO if echo is None else echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


class SqlSubmissionRepository(SubmissionRepositoryInterface):
    """
    SQLAlchemy-backed storage (SQLite or PostgreSQL).

    Records live one per row, unique on (user_id, section_id, question_id);
    ``upsert_record`` is one INSERT ... ON CONFLICT DO UPDATE statement that
    keeps the stored position of an existing record.

    Connection work runs in a worker thread so the event loop keeps serving
    other evaluations. SQLite calls are serialized: it allows one writer
    and an in-memory database shares a single connection.
    """

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine or create_db_engine()
        Base.metadata.create_all(self.engine)
        self._lock = threading.Lock() if self.engine.dialect.name == "sqlite" else nullcontext()

        logger.info(
            "Initialized SqlSubmissionRepository",
            extra_data={"dialect": self.engine.dialect.name}
        )

    def _insert(self, table):
        if self.engine.dialect.name == "postgresql":
            return postgresql.insert(table)
        if self.engine.dialect.name == "sqlite":
            return sqlite.insert(table)
        raise NotImplementedError(f"Upsert not supported for dialect {self.engine.dialect.name}")

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(self._locked, fn, *args)

    def _locked(self, fn: Callable[..., T], *args: Any) -> T:
        with self._lock:
            return fn(*args)

    def _ensure_result(self, conn, user_id: str, section_id: str, module: Optional[Module]) -> bool:
        """Create the parent row if missing; True when this call created it"""
        now = _utcnow()
        table = SubmissionResultRow.__table__
        created = conn.execute(
            self._insert(table)
            .values(
                user_id=user_id,
                section_id=section_id,
                module=module.value if module else None,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "section_id"])
        ).rowcount == 1
        if not created:
            conn.execute(
                table.update()
                .where(table.c.user_id == user_id, table.c.section_id == section_id)
                .values(updated_at=now)
            )
        return created

    @staticmethod
    def _record_values(user_id: str, section_id: str, record: AnswerRecord) -> dict:
        data = record.model_dump(mode="python")
        return {
            "user_id": user_id,
            "section_id": section_id,
            "question_id": record.question_id,
            "submitted_text": data["submitted_text"],
            "reference_candidates": data["reference_candidates"],
            "match_mode": record.match_mode.value,
            "similarity_percentage": data["similarity_percentage"],
            "is_correct": data["is_correct"],
            "audio_ref": data["audio_ref"],
            "status": record.status.value,
            "evaluated_at": data["evaluated_at"],
        }

    def _upsert_sync(
        self,
        user_id: str,
        section_id: str,
        record: AnswerRecord,
        module: Optional[Module],
    ) -> None:
        table = AnswerRecordRow.__table__
        next_position = (
            select(func.coalesce(func.max(table.c.position) + 1, 0))
            .where(table.c.user_id == user_id, table.c.section_id == section_id)
            .correlate(None)
            .scalar_subquery()
        )
        stmt = self._insert(table).values(
            position=next_position,
            **self._record_values(user_id, section_id, record),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "section_id", "question_id"],
            set_={field: stmt.excluded[field] for field in _RECORD_FIELDS},
        )

        with self.engine.begin() as conn:
            self._ensure_result(conn, user_id, section_id, module)
            conn.execute(stmt)

    async def upsert_record(
        self,
        user_id: str,
        section_id: str,
        record: AnswerRecord,
        module: Optional[Module] = None,
    ) -> None:
        await self._run(self._upsert_sync, user_id, section_id, record, module)

        logger.debug(
            "Answer record upserted",
            extra_data={"user_id": user_id, "section_id": section_id, "question_id": record.question_id}
        )

    def _replace_all_sync(
        self,
        user_id: str,
        section_id: str,
        records: Sequence[AnswerRecord],
        module: Optional[Module],
    ) -> bool:
        with self.engine.begin() as conn:
            if not self._ensure_result(conn, user_id, section_id, module):
                return False
            rows = [
                {"position": position, **self._record_values(user_id, section_id, record)}
                for position, record in enumerate(_dedupe(records))
            ]
            if rows:
                conn.execute(AnswerRecordRow.__table__.insert(), rows)
        return True

    async def replace_all(
        self,
        user_id: str,
        section_id: str,
        records: Sequence[AnswerRecord],
        module: Optional[Module] = None,
    ) -> bool:
        return await self._run(self._replace_all_sync, user_id, section_id, list(records), module)

    def _load(self, conn, row) -> SubmissionResult:
        table = AnswerRecordRow.__table__
        record_rows = conn.execute(
            select(table)
            .where(table.c.user_id == row.user_id, table.c.section_id == row.section_id)
            .order_by(table.c.position, table.c.id)
        ).mappings()
        answers = [
            AnswerRecord(
                question_id=r["question_id"],
                **{field: r[field] for field in _RECORD_FIELDS},
            )
            for r in record_rows
        ]
        return SubmissionResult(
            user_id=row.user_id,
            section_id=row.section_id,
            module=row.module,
            answers=answers,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _get_sync(self, user_id: str, section_id: str) -> Optional[SubmissionResult]:
        table = SubmissionResultRow.__table__
        with self.engine.connect() as conn:
            row = conn.execute(
                select(table).where(table.c.user_id == user_id, table.c.section_id == section_id)
            ).first()
            if row is None:
                return None
            return self._load(conn, row)

    async def get(self, user_id: str, section_id: str) -> Optional[SubmissionResult]:
        return await self._run(self._get_sync, user_id, section_id)

    def _list_for_user_sync(self, user_id: str) -> List[SubmissionResult]:
        table = SubmissionResultRow.__table__
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(table)
                .where(table.c.user_id == user_id)
                .order_by(table.c.created_at.desc(), table.c.id.desc())
            ).all()
            return [self._load(conn, row) for row in rows]

    async def list_for_user(self, user_id: str) -> List[SubmissionResult]:
        return await self._run(self._list_for_user_sync, user_id)
