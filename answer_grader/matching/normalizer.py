"""
Reference answer normalization.

Stored reference answers come in three shapes: a single string, a list of
strings, or a string holding a JSON-encoded list (a legacy double-encoding
written by older authoring tools). ``normalize`` turns any of them into an
ordered list of candidate strings. This module is the only place that knows
about the double-encoded form.
"""

from __future__ import annotations

import json
from typing import Any

from ..core.logging import get_logger

logger = get_logger(__name__)


def _looks_like_json_list(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("[") and value.endswith("]")


def _unwrap_json_list(candidates: list[str]) -> list[str]:
    """Replace a single bracketed candidate by the list it encodes, if it parses."""
    if len(candidates) != 1 or not _looks_like_json_list(candidates[0]):
        return candidates

    try:
        parsed = json.loads(candidates[0])
    except ValueError:
        logger.debug(
            "Bracketed reference answer is not JSON, keeping literal",
            extra_data={"value": candidates[0]}
        )
        return candidates

    if isinstance(parsed, list):
        return [_as_text(item) for item in parsed]
    return candidates


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(_as_text(item) for item in value)
    return str(value)


def normalize(raw: Any) -> list[str]:
    """
    Canonicalize a reference answer into an ordered list of candidates.

    Args:
        raw: Stored reference answer (None, str, number, list or tuple)

    Returns:
        Candidate strings in their original casing; empty when absent.
        Never raises: unexpected shapes degrade to a best-effort list.
    """
    if raw is None:
        return []

    if isinstance(raw, (list, tuple)):
        candidates = [_as_text(item) for item in raw]
    else:
        candidates = [_as_text(raw)]

    return _unwrap_json_list(candidates)


def has_candidates(candidates: list[str]) -> bool:
    """True when at least one candidate holds non-blank text."""
    return any(candidate.strip() for candidate in candidates)


def join_submitted(value: Any) -> str:
    """Reduce a submitted value to the single string used for comparison."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(_as_text(part) for part in value)
    return _as_text(value)


def canonical(text: str) -> str:
    """Comparison form of a candidate or submission: trimmed and lower-cased."""
    return text.strip().lower()
