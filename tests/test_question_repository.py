"""
Tests for question lookup.
"""

import json

import pytest

from answer_grader.core.errors import NotFound
from answer_grader.models import Module, QuestionType
from answer_grader.repositories import FileSystemQuestionRepository


@pytest.fixture
def questions_dir(tmp_path):
    (tmp_path / "reading-1.json").write_text(json.dumps({
        "module": "reading",
        "questions": [
            {"id": "r2", "type": "mcq", "answer": "B", "position": 2},
            {"id": "r1", "type": "fill-blank", "answer": ["colour", "color"], "position": 1},
            {"id": "broken", "type": "not-a-type", "answer": "x"},
            {"id": "r3", "type": "true-false", "answer": "False"},
        ],
    }))
    (tmp_path / "writing-1.json").write_text(json.dumps([
        {"id": "w1", "module": "writing", "type": "writing", "answer": "A cat sat on a mat"},
    ]))
    (tmp_path / "garbage.json").write_text("{not json")
    return tmp_path


@pytest.mark.asyncio
async def test_get_fills_section_and_module(questions_dir):
    repo = FileSystemQuestionRepository(questions_dir)

    question = await repo.get("r1")

    assert question.section_id == "reading-1"
    assert question.module == Module.READING
    assert question.type == QuestionType.FILL_BLANK
    assert question.answer == ["colour", "color"]


@pytest.mark.asyncio
async def test_bare_list_section(questions_dir):
    repo = FileSystemQuestionRepository(questions_dir)

    question = await repo.get("w1")

    assert question.section_id == "writing-1"
    assert question.module == Module.WRITING


@pytest.mark.asyncio
async def test_section_in_position_order(questions_dir):
    repo = FileSystemQuestionRepository(questions_dir)

    questions = await repo.list_by_section("reading-1")

    assert [q.id for q in questions] == ["r1", "r2", "r3"]
    assert await repo.count_by_section("reading-1") == 3


@pytest.mark.asyncio
async def test_malformed_entries_are_skipped(questions_dir):
    repo = FileSystemQuestionRepository(questions_dir)

    assert not await repo.exists("broken")
    assert await repo.list_by_section("garbage") == []


@pytest.mark.asyncio
async def test_unknown_question_and_section(questions_dir):
    repo = FileSystemQuestionRepository(questions_dir)

    with pytest.raises(NotFound):
        await repo.get("missing")
    assert await repo.list_by_section("listening-9") == []
    assert await repo.count_by_section("listening-9") == 0


@pytest.mark.asyncio
async def test_in_memory_repository(question_repository):
    assert await question_repository.exists("q1")
    assert not await question_repository.exists("zzz")
    assert [q.id for q in await question_repository.list_by_section("listening-1")] == [
        "q1", "q2", "q3", "q4", "q5",
    ]
