"""
Exact answer matching.

Used for discrete question types (multiple choice, true/false and
fill-in-the-blank): a submission is correct when it equals any candidate,
ignoring case and surrounding whitespace. No partial credit.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel

from .normalizer import canonical, join_submitted


class ExactMatcher(BaseModel):
    """Case- and whitespace-insensitive equality against a candidate list."""

    match_type: ClassVar[str] = "exact"

    def is_correct(self, submitted: Any, candidates: list[str]) -> bool:
        """
        Check a submission against every candidate.

        Args:
            submitted: Submitted string, or a list joined with single spaces
            candidates: Normalized reference candidates

        Returns:
            True if the submission equals any candidate after trimming and
            lower-casing
        """
        if not candidates:
            return False

        student_value = canonical(join_submitted(submitted))
        return any(student_value == canonical(candidate) for candidate in candidates)


def is_correct(submitted: Any, candidates: list[str]) -> bool:
    """Module-level shortcut for ``ExactMatcher().is_correct``."""
    return ExactMatcher().is_correct(submitted, candidates)
