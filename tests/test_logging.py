"""
Tests for structured logging.
"""

import json
import logging

from answer_grader.core.logging import (
    StructuredFormatter,
    TextFormatter,
    get_context_logger,
    get_logger,
)


def _capture(logger, caplog, message, **kwargs):
    with caplog.at_level(logging.INFO, logger=logger.logger.name):
        logger.info(message, **kwargs)
    return caplog.records[-1]


def test_extra_data_is_attached(caplog):
    record = _capture(get_logger("answer_grader.test"), caplog, "Answer scored",
                      extra_data={"question_id": "q1"})
    assert record.extra_data == {"question_id": "q1"}


def test_context_is_merged(caplog):
    logger = get_context_logger("answer_grader.test", user_id="u1")
    record = _capture(logger, caplog, "Submission stored", extra_data={"section_id": "s1"})
    assert record.extra_data == {"user_id": "u1", "section_id": "s1"}


def test_structured_formatter(caplog):
    record = _capture(get_logger("answer_grader.test"), caplog, "Answer scored",
                      extra_data={"percentage": 82})

    data = json.loads(StructuredFormatter().format(record))

    assert data["message"] == "Answer scored"
    assert data["level"] == "INFO"
    assert data["percentage"] == 82


def test_text_formatter_appends_fields(caplog):
    record = _capture(get_logger("answer_grader.test"), caplog, "Answer scored",
                      extra_data={"question_id": "q1"})
    assert TextFormatter().format(record).endswith("Answer scored [question_id=q1]")
